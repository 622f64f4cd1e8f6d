"""Pull the JSON payload out of a free-text LLM reply.

A reply that cannot be turned into a well-formed result is replaced by a
fixed fallback object, so the caller still answers with a success response.
``ParsedResult.fallback_used`` and ``reason`` tell the caller that happened.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

ANALYSIS_FALLBACK: dict[str, Any] = {
    "matchScore": 50,
    "missingKeywords": ["Unable to analyze - please try again"],
    "suggestions": [
        "There was an error analyzing your resume. Please try uploading again.",
    ],
    "rewriteExamples": [],
    "overallFeedback": (
        "We encountered an issue analyzing your resume. "
        "Please try again or contact support if the problem persists."
    ),
}

EMAIL_FALLBACK: dict[str, Any] = {
    "improvedEmail": "We encountered an issue improving your email. Please try again.",
    "explanation": "There was an error processing your email. Please try again or contact support.",
    "improvements": ["Unable to process - please try again"],
    "tone": "Professional",
}

EMAIL_SCORE_FIELDS = ("professionalismScore", "clarityScore", "effectivenessScore")


class ResponseParseError(ValueError):
    def __init__(self, message: str, *, reason: str):
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class ParsedResult:
    data: dict[str, Any]
    fallback_used: bool = False
    reason: str | None = None


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_valid_analysis_result(obj: Any) -> bool:
    return (
        isinstance(obj, dict)
        and is_number(obj.get("matchScore"))
        and isinstance(obj.get("missingKeywords"), list)
        and isinstance(obj.get("suggestions"), list)
        and isinstance(obj.get("rewriteExamples"), list)
        and isinstance(obj.get("overallFeedback"), str)
    )


def is_valid_email_result(obj: Any) -> bool:
    if not isinstance(obj, dict):
        return False
    if not (
        isinstance(obj.get("improvedEmail"), str)
        and isinstance(obj.get("explanation"), str)
        and isinstance(obj.get("improvements"), list)
        and isinstance(obj.get("tone"), str)
    ):
        return False
    return all(field not in obj or is_number(obj[field]) for field in EMAIL_SCORE_FIELDS)


def extract_json_object(text: str) -> dict[str, Any]:
    """Decode the span from the first ``{`` to the last ``}`` in ``text``."""
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        raise ResponseParseError("No JSON found in response", reason="no_json")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Invalid JSON in response: {exc}", reason="invalid_json") from exc
    if not isinstance(parsed, dict):
        raise ResponseParseError("JSON payload is not an object", reason="invalid_shape")
    return parsed


def _parse_with_fallback(
    text: str,
    *,
    kind: str,
    validator: Callable[[Any], bool],
    fallback: dict[str, Any],
) -> ParsedResult:
    try:
        parsed = extract_json_object(text)
        if not validator(parsed):
            raise ResponseParseError("Invalid response structure", reason="invalid_shape")
        return ParsedResult(data=parsed)
    except ResponseParseError as exc:
        logger.warning(
            "llm_response_fallback kind=%s reason=%s response_len=%s: %s",
            kind,
            exc.reason,
            len(text or ""),
            exc,
        )
        return ParsedResult(data=copy.deepcopy(fallback), fallback_used=True, reason=exc.reason)


def parse_analysis_response(text: str) -> ParsedResult:
    return _parse_with_fallback(
        text,
        kind="analysis",
        validator=is_valid_analysis_result,
        fallback=ANALYSIS_FALLBACK,
    )


def parse_email_response(text: str) -> ParsedResult:
    return _parse_with_fallback(
        text,
        kind="email",
        validator=is_valid_email_result,
        fallback=EMAIL_FALLBACK,
    )
