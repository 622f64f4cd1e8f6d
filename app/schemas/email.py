from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel

EmailPurpose = Literal[
    "job-followup",
    "apology",
    "client-pitch",
    "meeting-request",
    "thank-you",
    "complaint",
    "networking",
    "proposal",
    "general",
]

EMAIL_PURPOSES: tuple[str, ...] = get_args(EmailPurpose)


class EmailImproveRequest(BaseModel):
    emailDraft: str | None = None
    purpose: str | None = None


class EmailImproveResponse(BaseModel):
    success: Literal[True] = True
    data: dict[str, Any]
