from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

AnalysisPurpose = Literal["before-applying", "after-rejection"]

ANALYSIS_PURPOSES: tuple[str, ...] = get_args(AnalysisPurpose)

PURPOSE_LABELS = {
    "before-applying": "Before Applying",
    "after-rejection": "After Rejection",
}


class AnalyzeRequest(BaseModel):
    resumeText: str | None = None
    jobDescription: str | None = None
    purpose: str | None = None


class RewriteExample(BaseModel):
    original: str = ""
    improved: str = ""


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _text_items(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [_as_text(item) for item in value if item is not None]


class AnalysisResult(BaseModel):
    """Analysis result as returned to the client.

    Only matchScore, missingKeywords, suggestions and overallFeedback are
    checked before export; every other field is coerced into something the
    report can print, so whatever the analyze endpoint returned stays
    exportable.
    """

    model_config = ConfigDict(extra="allow")

    matchScore: float
    missingKeywords: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    rewriteExamples: list[RewriteExample] = Field(default_factory=list)
    overallFeedback: str
    coverLetter: str | None = None
    atsScore: float | None = None
    atsOptimizations: list[str] = Field(default_factory=list)

    @field_validator("missingKeywords", "suggestions", "atsOptimizations", mode="before")
    @classmethod
    def _coerce_text_list(cls, value: Any) -> list[str]:
        return _text_items(value)

    @field_validator("rewriteExamples", mode="before")
    @classmethod
    def _coerce_rewrites(cls, value: Any) -> list[dict[str, str]]:
        if not isinstance(value, list):
            return []
        examples = []
        for item in value:
            if isinstance(item, dict):
                example = {"original": _as_text(item.get("original")), "improved": _as_text(item.get("improved"))}
            else:
                example = {"original": "", "improved": _as_text(item)}
            if example["original"] or example["improved"]:
                examples.append(example)
        return examples

    @field_validator("coverLetter", mode="before")
    @classmethod
    def _coerce_cover_letter(cls, value: Any) -> str | None:
        return value if isinstance(value, str) and value.strip() else None

    @field_validator("atsScore", mode="before")
    @classmethod
    def _coerce_ats_score(cls, value: Any) -> float | None:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        return None


class AnalyzeResponse(BaseModel):
    success: Literal[True] = True
    data: dict[str, Any]


class ExportPdfRequest(BaseModel):
    resumeFilename: str | None = None
    analysisResult: dict[str, Any] | None = None
    jobDescription: str | None = None
    purpose: str | None = None
