from __future__ import annotations

from pydantic import BaseModel


class UploadSummary(BaseModel):
    filename: str
    size: int
    type: str
    textLength: int
    preview: str


class UploadResponse(BaseModel):
    success: bool = True
    data: UploadSummary
    text: str
