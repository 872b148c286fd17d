"""Shared test helpers for the inspector_report test suite."""

from __future__ import annotations

import re
from io import BytesIO

from inspector_report.events import ReportContext
from inspector_report.report import GA4, RenderSettings, RenderStats, ReportLayout, render_report

_FOOTER_PAGE_RE = re.compile(r"\| Page (\d+)")

# ---------------------------------------------------------------------------
# PDF text extraction helpers
# ---------------------------------------------------------------------------


def extract_pdf_pages(pdf_bytes: bytes) -> list[str]:
    """Extract the text of every page of a PDF byte string using pypdf."""
    from pypdf import PdfReader

    reader = PdfReader(BytesIO(pdf_bytes))
    return [(page.extract_text() or "") for page in reader.pages]


def extract_pdf_text(pdf_bytes: bytes) -> str:
    """Extract all text from a PDF byte string using pypdf."""
    return "\n".join(extract_pdf_pages(pdf_bytes))


def footer_page_numbers(page_text: str) -> list[int]:
    return [int(number) for number in _FOOTER_PAGE_RE.findall(page_text)]


def render_to_bytes(
    context: ReportContext,
    layout: ReportLayout = GA4,
    settings: RenderSettings | None = None,
) -> tuple[bytes, RenderStats]:
    out = BytesIO()
    stats = render_report(context, out, layout, settings=settings)
    return out.getvalue(), stats
