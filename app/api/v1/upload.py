from fastapi import APIRouter, File, Request, UploadFile

from app.core.config import settings
from app.core.errors import InputValidationError, UnsupportedMediaError
from app.core.rate_limit import rate_limit
from app.schemas.upload import UploadResponse, UploadSummary
from app.services.file_processor import process_file, validate_upload

router = APIRouter()

_READ_CHUNK_BYTES = 1024 * 64


async def _read_limited(file: UploadFile, max_bytes: int) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(_READ_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise UnsupportedMediaError(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/upload", response_model=UploadResponse)
@rate_limit()
async def upload_resume(request: Request, resume: UploadFile | None = File(default=None)):
    _ = request
    if resume is None:
        raise InputValidationError("Please select a resume file to upload", error="No file uploaded")

    filename = resume.filename or "uploaded-file"
    content_type = resume.content_type or ""
    # reject by declared type before reading the body
    validate_upload(content_type=content_type, size=resume.size or 0)
    content = await _read_limited(resume, settings.max_upload_bytes)

    processed = await process_file(filename=filename, content=content, content_type=content_type)
    return UploadResponse(
        data=UploadSummary(
            filename=processed.filename,
            size=processed.size,
            type=processed.type,
            textLength=len(processed.text),
            preview=processed.preview,
        ),
        text=processed.text,
    )
