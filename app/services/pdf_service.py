from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core.config import settings
from app.core.errors import UpstreamServiceError
from app.schemas.analysis import PURPOSE_LABELS, AnalysisResult

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
REPORT_TEMPLATE = "analysis_report.html"


@dataclass(frozen=True)
class PDFExportData:
    resume_filename: str
    analysis_result: AnalysisResult
    job_description: str
    purpose: str


def export_filename(now_ms: int | None = None) -> str:
    stamp = int(time.time() * 1000) if now_ms is None else now_ms
    return f"resume-analysis-{stamp}.pdf"


def _format_score(value: float | None) -> str:
    if value is None:
        return ""
    return str(int(round(value)))


class PDFReportRenderer:
    """Renders an analysis result to an HTML report and converts it to PDF."""

    def __init__(self, templates_dir: Path = TEMPLATES_DIR, timeout_s: float | None = None):
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html"]),
        )
        self._timeout_s = settings.pdf_render_timeout_s if timeout_s is None else timeout_s

    def render_html(self, data: PDFExportData, generated_at: datetime | None = None) -> str:
        moment = generated_at or datetime.now(timezone.utc)
        template = self._env.get_template(REPORT_TEMPLATE)
        return template.render(
            resume_filename=data.resume_filename,
            purpose_label=PURPOSE_LABELS.get(data.purpose, data.purpose),
            generated_at=moment.strftime("%B %d, %Y %H:%M %Z").strip(),
            match_score=_format_score(data.analysis_result.matchScore),
            ats_score=_format_score(data.analysis_result.atsScore),
            result=data.analysis_result,
            job_description=data.job_description,
        )

    async def render_pdf(self, data: PDFExportData) -> bytes:
        html = self.render_html(data)
        started = time.perf_counter()
        try:
            pdf = await asyncio.wait_for(asyncio.to_thread(_html_to_pdf, html), timeout=self._timeout_s)
        except Exception as exc:  # noqa: BLE001 - renderer failures surface as one upstream error
            logger.error("pdf_render_failed file=%s: %s", data.resume_filename, exc, exc_info=True)
            raise UpstreamServiceError(
                "Failed to generate PDF report",
                error="Export failed",
                code="pdf_render_failed",
            ) from exc
        logger.info(
            "pdf_rendered file=%s bytes=%s latency_ms=%s",
            data.resume_filename,
            len(pdf),
            int((time.perf_counter() - started) * 1000),
        )
        return pdf


def _html_to_pdf(html: str) -> bytes:
    from weasyprint import HTML

    return HTML(string=html).write_pdf()


def get_pdf_renderer() -> PDFReportRenderer:
    return PDFReportRenderer()
