from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from app.core.rate_limit import rate_limit
from app.schemas.analysis import ExportPdfRequest
from app.services.pdf_service import PDFExportData, PDFReportRenderer, export_filename, get_pdf_renderer
from app.services.validation import validate_export_request

router = APIRouter()


@router.post(
    "/export-pdf",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
)
@rate_limit()
async def export_pdf(
    request: Request,
    payload: ExportPdfRequest,
    renderer: PDFReportRenderer = Depends(get_pdf_renderer),
):
    _ = request
    export_input = validate_export_request(payload)
    pdf = await renderer.render_pdf(
        PDFExportData(
            resume_filename=export_input.resume_filename,
            analysis_result=export_input.analysis_result,
            job_description=export_input.job_description,
            purpose=export_input.purpose,
        )
    )
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )
