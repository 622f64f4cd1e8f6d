from typing import NoReturn

from fastapi import APIRouter, Depends, Response

from app.core.config import settings
from app.core.errors import ConfigurationError, UpstreamServiceError
from app.core.usage_gate import enforce_usage_quota
from app.schemas.analysis import AnalyzeRequest, AnalyzeResponse
from app.schemas.email import EmailImproveRequest, EmailImproveResponse
from app.services.ai_service import AIService, get_ai_service
from app.services.llm_client import LLMServiceError
from app.services.response_parser import ParsedResult
from app.services.validation import validate_analyze_request, validate_email_request

router = APIRouter()


def _raise_upstream_error(exc: LLMServiceError, *, error: str, action: str) -> NoReturn:
    if exc.code == "llm_not_configured":
        raise ConfigurationError("OpenAI API is not properly configured", code=exc.code) from exc
    if settings.expose_error_details:
        message = f"Failed to {action}: {exc}"
    else:
        message = f"Failed to {action}. The AI service is temporarily unavailable, please try again."
    raise UpstreamServiceError(message, error=error, code=exc.code) from exc


def _flag_fallback(response: Response, result: ParsedResult) -> None:
    if result.fallback_used:
        response.headers["X-AI-Fallback"] = "true"
        response.headers["X-AI-Fallback-Reason"] = result.reason or "unknown"


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_resume(
    payload: AnalyzeRequest,
    response: Response,
    _usage=Depends(enforce_usage_quota),
    service: AIService = Depends(get_ai_service),
):
    request_input = validate_analyze_request(payload)
    try:
        result = await service.analyze_resume(
            resume_text=request_input.resume_text,
            job_description=request_input.job_description,
            purpose=request_input.purpose,
        )
    except LLMServiceError as exc:
        _raise_upstream_error(exc, error="Analysis failed", action="analyze resume")
    _flag_fallback(response, result)
    return AnalyzeResponse(data=result.data)


@router.post("/improve-email", response_model=EmailImproveResponse)
async def improve_email(
    payload: EmailImproveRequest,
    response: Response,
    _usage=Depends(enforce_usage_quota),
    service: AIService = Depends(get_ai_service),
):
    request_input = validate_email_request(payload)
    try:
        result = await service.improve_email(
            email_draft=request_input.email_draft,
            purpose=request_input.purpose,
        )
    except LLMServiceError as exc:
        _raise_upstream_error(exc, error="Email improvement failed", action="improve email")
    _flag_fallback(response, result)
    return EmailImproveResponse(data=result.data)
