"""PDF report builder – Canvas-based paginated event report.

Section order: title/logo, metadata lines, summary box, "Events" heading,
events table, detail cards and (when the layout enables it) the
diagnostics/warnings listing.  Listings are capped; a notice is printed
when a cap hides events.  The footer is drawn by a page-added listener so
every page, including those created mid-listing, carries it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from io import BytesIO
from typing import BinaryIO

from reportlab.pdfgen.canvas import Canvas

from ..events import ReportContext
from .fields import warnings_of
from .layouts import GA4, ReportLayout
from .pdf_layout import PageManager, RenderSettings
from .pdf_sections import (
    SECTION_GAP,
    SECTION_HEADING_H,
    TABLE_HEADER_H,
    TABLE_ROW_H,
    draw_detail_cards,
    draw_events_table,
    draw_footer,
    draw_message,
    draw_metadata,
    draw_notice,
    draw_section_heading,
    draw_summary_box,
    draw_title_block,
    draw_warnings,
)
from .summary import compute_stats
from .text import format_timestamp, parse_timestamp

LOGGER = logging.getLogger(__name__)


class ReportRenderError(RuntimeError):
    """Raised once when a report cannot be rendered or written."""


@dataclass(slots=True)
class RenderStats:
    layout: str
    total_events: int = 0
    pages: int = 0
    table_rows: int = 0
    detail_cards: int = 0
    warning_lines: int = 0
    logo_drawn: bool = False
    notices: list[str] = field(default_factory=list)
    headings: list[tuple[int, str]] = field(default_factory=list)
    footer_pages: list[int] = field(default_factory=list)

    def pages_with_heading(self, text: str) -> list[int]:
        return [page for page, heading in self.headings if heading == text]


def _cap(override: int | None, default: int) -> int:
    return max(0, override) if override is not None else default


def report_filename(layout: ReportLayout, generated_at: str) -> str:
    """Download name such as ``ga4-inspector-report-2024-01-05.pdf``."""
    moment = parse_timestamp(generated_at) or datetime.now(UTC)
    return f"{layout.slug}-report-{moment.date().isoformat()}.pdf"


def _render(
    context: ReportContext, layout: ReportLayout, settings: RenderSettings, buf: BinaryIO
) -> RenderStats:
    events = context.events
    max_events = _cap(settings.max_events, layout.max_events)
    max_warning_events = _cap(settings.max_warning_events, layout.max_warning_events)
    visible = events[:max_events]
    generated_text = format_timestamp(context.generated_at)
    stats = RenderStats(layout=layout.key, total_events=len(events))

    geometry = settings.geometry()
    canvas = Canvas(buf, pagesize=geometry.page_size, pageCompression=0, invariant=1)
    canvas.setTitle(layout.title)
    canvas.setAuthor(layout.report_name)
    canvas.setSubject(f"{len(events)} events")
    pm = PageManager(canvas, geometry)

    def on_page_added(page: int) -> None:
        stats.footer_pages.append(page)
        draw_footer(pm, layout, generated_text, page)

    pm.add_page_listener(on_page_added)
    pm.start()

    stats.logo_drawn = draw_title_block(pm, layout, context.logo_path)
    draw_metadata(pm, layout, context, generated_text)
    draw_summary_box(pm, layout, compute_stats(events))

    pm.ensure_space(SECTION_HEADING_H + SECTION_GAP + TABLE_HEADER_H + TABLE_ROW_H)
    draw_section_heading(pm, layout.events_heading)

    if not visible:
        draw_message(pm, layout.empty_events_text)
    else:
        stats.table_rows = draw_events_table(pm, layout, visible)
        if len(events) > max_events:
            notice = (
                f"Showing first {max_events} of {len(events)} events. "
                "Export a smaller time range for full detail."
            )
            draw_notice(pm, notice)
            stats.notices.append(notice)

        stats.detail_cards = draw_detail_cards(pm, layout, visible)
        if len(events) > max_events:
            notice = f"Details limited to first {max_events} of {len(events)} events."
            draw_notice(pm, notice)
            stats.notices.append(notice)

        if layout.show_warnings:
            flagged = [event for event in events if warnings_of(event)]
            stats.warning_lines = draw_warnings(pm, layout, flagged[:max_warning_events])
            if len(flagged) > max_warning_events:
                notice = (
                    f"Diagnostics limited to first {max_warning_events} of "
                    f"{len(flagged)} events with warnings."
                )
                draw_notice(pm, notice)
                stats.notices.append(notice)

    stats.pages = pm.finish()
    stats.headings = list(pm.headings)
    canvas.save()
    return stats


def render_report(
    context: ReportContext,
    stream: BinaryIO,
    layout: ReportLayout = GA4,
    *,
    settings: RenderSettings | None = None,
) -> RenderStats:
    """Render the report and write the finished PDF to *stream*.

    The document is assembled in memory first, so *stream* only ever
    receives a complete PDF.  Any failure is logged and raised once as
    ``ReportRenderError``.
    """
    buf = BytesIO()
    try:
        stats = _render(context, layout, settings or RenderSettings(), buf)
        stream.write(buf.getvalue())
    except Exception as exc:
        LOGGER.error("%s generation failed.", layout.title, exc_info=True)
        raise ReportRenderError(f"{layout.title} generation failed") from exc
    LOGGER.info(
        "Rendered %s: events=%d pages=%d rows=%d cards=%d warnings=%d",
        layout.title,
        stats.total_events,
        stats.pages,
        stats.table_rows,
        stats.detail_cards,
        stats.warning_lines,
    )
    return stats


def build_report_pdf(
    context: ReportContext,
    layout: ReportLayout = GA4,
    *,
    settings: RenderSettings | None = None,
) -> bytes:
    """Build the report PDF and return its bytes."""
    out = BytesIO()
    render_report(context, out, layout, settings=settings)
    return out.getvalue()
