"""inspector_report.report – layout and pagination engine for event reports.

One parametrised engine renders both presets; a ``ReportLayout`` selects
the columns, card fields and optional sections.
"""

from .layouts import GA4, LAYOUTS, MIXPANEL, ReportLayout, get_layout
from .pdf_builder import (
    RenderStats,
    ReportRenderError,
    build_report_pdf,
    render_report,
    report_filename,
)
from .pdf_layout import RenderSettings

__all__ = [
    "GA4",
    "LAYOUTS",
    "MIXPANEL",
    "RenderSettings",
    "RenderStats",
    "ReportLayout",
    "ReportRenderError",
    "build_report_pdf",
    "get_layout",
    "render_report",
    "report_filename",
]
