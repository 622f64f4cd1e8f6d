from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.core.errors import InputValidationError
from app.schemas.analysis import ANALYSIS_PURPOSES, AnalysisResult, AnalyzeRequest, ExportPdfRequest
from app.schemas.email import EMAIL_PURPOSES, EmailImproveRequest
from app.services.response_parser import is_number

MIN_TEXT_CHARS = 10


@dataclass(frozen=True)
class AnalysisInput:
    resume_text: str
    job_description: str
    purpose: str


@dataclass(frozen=True)
class EmailInput:
    email_draft: str
    purpose: str


@dataclass(frozen=True)
class ExportInput:
    resume_filename: str
    analysis_result: AnalysisResult
    job_description: str
    purpose: str


def validate_analyze_request(payload: AnalyzeRequest) -> AnalysisInput:
    if not payload.resumeText or not payload.jobDescription or not payload.purpose:
        raise InputValidationError(
            "resumeText, jobDescription, and purpose are required",
            error="Missing required fields",
        )
    if payload.purpose not in ANALYSIS_PURPOSES:
        raise InputValidationError(
            'purpose must be either "before-applying" or "after-rejection"',
            error="Invalid purpose",
        )
    if len(payload.resumeText) < MIN_TEXT_CHARS:
        raise InputValidationError(
            f"Resume text must be at least {MIN_TEXT_CHARS} characters long",
            error="Resume too short",
        )
    if len(payload.jobDescription) < MIN_TEXT_CHARS:
        raise InputValidationError(
            f"Job description must be at least {MIN_TEXT_CHARS} characters long",
            error="Job description too short",
        )
    return AnalysisInput(
        resume_text=payload.resumeText,
        job_description=payload.jobDescription,
        purpose=payload.purpose,
    )


def validate_email_request(payload: EmailImproveRequest) -> EmailInput:
    if not payload.emailDraft or not payload.purpose:
        raise InputValidationError("emailDraft and purpose are required", error="Missing required fields")
    if len(payload.emailDraft) < MIN_TEXT_CHARS:
        raise InputValidationError(
            f"Email draft must be at least {MIN_TEXT_CHARS} characters long",
            error="Email too short",
        )
    if payload.purpose not in EMAIL_PURPOSES:
        raise InputValidationError(
            f"Purpose must be one of: {', '.join(EMAIL_PURPOSES)}",
            error="Invalid purpose",
        )
    return EmailInput(email_draft=payload.emailDraft, purpose=payload.purpose)


def _has_export_fields(result: dict[str, Any]) -> bool:
    return (
        is_number(result.get("matchScore"))
        and isinstance(result.get("missingKeywords"), list)
        and isinstance(result.get("suggestions"), list)
        and isinstance(result.get("overallFeedback"), str)
    )


def validate_export_request(payload: ExportPdfRequest) -> ExportInput:
    if not payload.resumeFilename or not payload.analysisResult or not payload.jobDescription or not payload.purpose:
        raise InputValidationError(
            "resumeFilename, analysisResult, jobDescription, and purpose are required",
            error="Missing required fields",
        )

    if not _has_export_fields(payload.analysisResult):
        raise InputValidationError(
            "Analysis result must contain a numeric matchScore, missingKeywords and suggestions lists, "
            "and overallFeedback text",
            error="Invalid analysis result",
        )
    result = AnalysisResult.model_validate(payload.analysisResult)

    return ExportInput(
        resume_filename=payload.resumeFilename,
        analysis_result=result,
        job_description=payload.jobDescription,
        purpose=payload.purpose,
    )
