"""Block renderers for the inspector report.

Each renderer draws at the ``PageManager`` cursor and leaves it below what
it drew.  Listings (table, detail cards, warnings) break pages themselves
and redraw their header or a "(cont.)" heading on every new page.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from itertools import accumulate
from pathlib import Path
from typing import TypeVar

from ..events import EventRecord, ReportContext
from ..report_theme import (
    BOX_RADIUS,
    CARD_RADIUS,
    FONT_B,
    FS_BOX_TITLE,
    FS_CARD,
    FS_CARD_TITLE,
    FS_FOOTER,
    FS_META,
    FS_SECTION,
    FS_TABLE,
    FS_TITLE,
    REPORT_COLORS,
)
from .fields import DerivedEventView, derive_view
from .layouts import CardLayout, ReportLayout
from .pdf_layout import PageManager, split_widths
from .summary import AggregateStats
from .text import clean, truncate_for_display

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

LOGO_BLOCK_W = 170
LOGO_BOX_W = 150
LOGO_BOX_H = 50
TITLE_BLOCK_H = 72
TITLE_GUTTER = 190

META_LINE_H = 14
SECTION_HEADING_H = 22
SECTION_GAP = 8
TABLE_HEADER_H = 18
TABLE_ROW_H = 16
CARD_PADDING = 8
CARD_GAP = 8
CARD_LINE_H = 12
IDENTITY_LINE_H = 10.5
WARNING_LINE_H = 14
NOTICE_H = 12
FS_NO_WARNINGS = 9.5

CONTINUED_SUFFIX = " (cont.)"


def _value(view: DerivedEventView, field: str, max_chars: int = 0) -> str:
    raw = getattr(view, field)
    text = raw if isinstance(raw, str) else str(raw)
    return truncate_for_display(text, max_chars) if max_chars else text


def paginate(
    pm: PageManager,
    items: Sequence[T],
    *,
    item_height: float,
    heading_height: float,
    draw_heading: Callable[[bool], None],
    draw_item: Callable[[int, T], None],
) -> int:
    """Lay out *items* with a heading on every page they appear on.

    The first heading is the plain variant; every heading drawn after a
    page break is the continued variant.  Returns the number of items drawn.
    """
    pm.ensure_space(heading_height + item_height)
    draw_heading(False)
    drawn = 0
    for index, item in enumerate(items):
        if pm.ensure_space(item_height):
            draw_heading(True)
        draw_item(index, item)
        drawn += 1
    return drawn


# ---------------------------------------------------------------------------
# Page furniture
# ---------------------------------------------------------------------------


def draw_footer(pm: PageManager, layout: ReportLayout, generated_text: str, page: int) -> None:
    g = pm.geometry
    pm.canvas.saveState()
    pm.text(
        g.left,
        g.footer_y,
        f"{layout.report_name} | Report generated at {generated_text} | Page {page}",
        size=FS_FOOTER,
        color=REPORT_COLORS["text_muted"],
        width=g.content_width,
    )
    pm.canvas.restoreState()


def _draw_logo(pm: PageManager, logo_path: Path, x: float, y_top: float) -> bool:
    if not logo_path.is_file():
        LOGGER.warning("Report logo not found at %s; drawing report without it", logo_path)
        return False
    try:
        pm.image(logo_path, x, y_top, LOGO_BOX_W, LOGO_BOX_H)
    except Exception as exc:
        LOGGER.warning("Could not draw report logo %s: %s", logo_path, exc)
        return False
    return True


def draw_title_block(pm: PageManager, layout: ReportLayout, logo_path: Path | None) -> bool:
    """Draw the title (top left) and logo block (top right).

    Returns whether the logo image was drawn.
    """
    g = pm.geometry
    top = pm.y
    logo_x = g.left + g.content_width - LOGO_BLOCK_W
    logo_drawn = False
    if logo_path is not None:
        logo_drawn = _draw_logo(pm, Path(logo_path), logo_x + 18, top)
    pm.text(
        logo_x,
        top + LOGO_BOX_H + 5,
        layout.powered_by,
        size=9,
        color=REPORT_COLORS["text_subtle"],
        width=LOGO_BLOCK_W,
        align="right",
    )
    pm.text(
        g.left, top, layout.title, font=FONT_B, size=FS_TITLE, width=g.content_width - TITLE_GUTTER
    )
    pm.advance_to(top + TITLE_BLOCK_H)
    return logo_drawn


def draw_metadata(
    pm: PageManager, layout: ReportLayout, context: ReportContext, generated_text: str
) -> None:
    lines = [f"Generated at: {generated_text}"]
    if layout.show_source:
        lines.append(f"Source: {truncate_for_display(clean(context.source, 'extension', 64), 80)}")
    if context.session_page_url:
        lines.append(f"Page URL: {truncate_for_display(context.session_page_url, 120)}")
    if context.session_user_agent:
        lines.append(f"User agent: {truncate_for_display(context.session_user_agent, 120)}")
    g = pm.geometry
    for line in lines:
        pm.text(
            g.left,
            pm.y,
            line,
            size=FS_META,
            color=REPORT_COLORS["text_body"],
            width=g.content_width,
        )
        pm.advance(META_LINE_H)


def draw_summary_box(pm: PageManager, layout: ReportLayout, stats: AggregateStats) -> None:
    """Filled box with the layout's label/value pairs in a two-column grid."""
    g = pm.geometry
    height = layout.summary_height
    pm.advance(SECTION_GAP)
    pm.ensure_space(height)
    top = pm.y
    pm.rect(g.left, top, g.content_width, height, fill=REPORT_COLORS["surface"], radius=BOX_RADIUS)
    pm.text(g.left + 12, top + 10, "Summary", font=FONT_B, size=FS_BOX_TITLE)

    pairs = layout.summary_fields
    rows = len(pairs) if len(pairs) <= 2 else math.ceil(len(pairs) / 2)
    columns = math.ceil(len(pairs) / rows) if rows else 1
    col_w = (g.content_width - 24) / max(columns, 1)
    for index, (label, key) in enumerate(pairs):
        col, row = divmod(index, rows)
        pm.text(
            g.left + 12 + col * col_w,
            top + 30 + row * 16,
            f"{label}: {stats.value_for(key)}",
            size=FS_META,
            color=REPORT_COLORS["text_body"],
            width=col_w - 12,
        )
    pm.advance_to(top + height + 24)


def draw_section_heading(pm: PageManager, text: str) -> None:
    g = pm.geometry
    pm.text(g.left, pm.y + 6, text, font=FONT_B, size=FS_SECTION, width=g.content_width)
    pm.record_heading(text)
    pm.advance(SECTION_HEADING_H)


def draw_message(pm: PageManager, text: str, *, size: float = FS_META) -> None:
    g = pm.geometry
    pm.ensure_space(size + 14)
    pm.text(
        g.left, pm.y + 8, text, size=size, color=REPORT_COLORS["text_subtle"], width=g.content_width
    )
    pm.advance(size + 14)


def draw_notice(pm: PageManager, text: str) -> None:
    g = pm.geometry
    pm.ensure_space(NOTICE_H + 2)
    pm.text(
        g.left,
        pm.y + 2,
        text,
        size=FS_TABLE,
        color=REPORT_COLORS["text_muted"],
        width=g.content_width,
    )
    pm.advance(NOTICE_H + SECTION_GAP)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


def draw_events_table(
    pm: PageManager, layout: ReportLayout, events: Sequence[EventRecord]
) -> int:
    """Draw one row per event with the header repeated on every page."""
    g = pm.geometry
    columns = layout.columns
    widths = split_widths(g.content_width, tuple(col.weight for col in columns))
    xs = list(accumulate([g.left, *widths[:-1]]))
    header_text = " | ".join(col.header for col in columns)

    def draw_header(_continued: bool) -> None:
        y = pm.y
        pm.rect(g.left, y, g.content_width, TABLE_HEADER_H, fill=REPORT_COLORS["table_header_bg"])
        for col, x, w in zip(columns, xs, widths, strict=True):
            pm.text(x + 4, y + 5, col.header, font=FONT_B, size=FS_TABLE, width=w - 8)
        pm.record_heading(header_text)
        pm.advance(TABLE_HEADER_H)

    def draw_row(index: int, event: EventRecord) -> None:
        y = pm.y
        if index % 2 == 1:
            pm.rect(g.left, y, g.content_width, TABLE_ROW_H, fill=REPORT_COLORS["table_zebra_bg"])
        view = derive_view(event, classify=layout.classify_events)
        for col, x, w in zip(columns, xs, widths, strict=True):
            value = _value(view, col.field, col.max_chars)
            pm.text(x + 4, y + 4, value, size=FS_TABLE, width=w - 8)
        pm.advance(TABLE_ROW_H)

    pm.advance(SECTION_GAP)
    drawn = paginate(
        pm,
        events,
        item_height=TABLE_ROW_H,
        heading_height=TABLE_HEADER_H,
        draw_heading=draw_header,
        draw_item=draw_row,
    )
    pm.advance(SECTION_GAP)
    return drawn


def _draw_card(pm: PageManager, card: CardLayout, view: DerivedEventView) -> None:
    g = pm.geometry
    left, width, y = g.left, g.content_width, pm.y
    x = left + CARD_PADDING
    text_w = width - 2 * CARD_PADDING
    pm.rect(left, y, width, card.height, stroke=REPORT_COLORS["border"], radius=CARD_RADIUS)

    title = " | ".join(_value(view, field, max_chars) for field, max_chars in card.title_fields)
    pm.text(x, y + CARD_PADDING, title, font=FONT_B, size=FS_CARD_TITLE, width=text_w)

    line_y = y + CARD_PADDING + 13
    for line in card.top_lines:
        value = _value(view, line.field, line.max_chars)
        pm.text(x, line_y, f"{line.label}: {value}", size=FS_TABLE, width=text_w)
        line_y += 13

    col_w = (text_w - card.identity_gap) / 2
    for col, pairs in enumerate((card.left_identity, card.right_identity)):
        col_x = x + col * (col_w + card.identity_gap)
        for row, (label, field) in enumerate(pairs):
            pm.text(
                col_x,
                line_y + 1 + row * IDENTITY_LINE_H,
                f"{label}: {_value(view, field, card.identity_chars)}",
                size=FS_CARD,
                color=REPORT_COLORS["text_secondary"],
                width=col_w,
            )

    slots = len(card.bottom_lines)
    for index, line in enumerate(card.bottom_lines):
        if line.optional and not getattr(view, line.field):
            continue
        text_y = y + card.height - 14 - CARD_LINE_H * (slots - 1 - index)
        if line.rule_above:
            pm.hline(x, left + width - CARD_PADDING, text_y - 6, color=REPORT_COLORS["rule"])
        pm.text(
            x,
            text_y,
            f"{line.label}: {_value(view, line.field, line.max_chars)}",
            size=FS_CARD,
            color=REPORT_COLORS[line.tone],
            width=text_w,
        )
    pm.advance(card.height + CARD_GAP)


def draw_detail_cards(
    pm: PageManager, layout: ReportLayout, events: Sequence[EventRecord]
) -> int:
    """Draw one fixed-height card per event."""

    def draw_heading(continued: bool) -> None:
        suffix = CONTINUED_SUFFIX if continued else ""
        draw_section_heading(pm, f"{layout.details_heading}{suffix}")
        pm.advance(SECTION_GAP)

    def draw_item(_index: int, event: EventRecord) -> None:
        _draw_card(pm, layout.card, derive_view(event, classify=layout.classify_events))

    return paginate(
        pm,
        events,
        item_height=layout.card.height + CARD_GAP,
        heading_height=SECTION_HEADING_H + SECTION_GAP,
        draw_heading=draw_heading,
        draw_item=draw_item,
    )


def draw_warnings(
    pm: PageManager, layout: ReportLayout, events: Sequence[EventRecord]
) -> int:
    """Numbered diagnostics lines, or a single "no warnings" line."""
    g = pm.geometry
    if not events:
        pm.ensure_space(SECTION_HEADING_H + FS_NO_WARNINGS + 14)
        draw_section_heading(pm, layout.warnings_heading)
        draw_message(pm, layout.no_warnings_text, size=FS_NO_WARNINGS)
        return 0

    def draw_heading(continued: bool) -> None:
        suffix = CONTINUED_SUFFIX if continued else ""
        draw_section_heading(pm, f"{layout.warnings_heading}{suffix}")
        pm.advance(SECTION_GAP)

    def draw_item(index: int, event: EventRecord) -> None:
        view = derive_view(event, classify=layout.classify_events)
        line = (
            f"{index + 1}. {truncate_for_display(view.name, 40)}"
            f" @ {truncate_for_display(view.timestamp, 40)}"
            f" => {truncate_for_display(view.warnings_text, 130)}"
        )
        pm.text(
            g.left,
            pm.y,
            line,
            size=FS_TABLE,
            color=REPORT_COLORS["text_body"],
            width=g.content_width,
        )
        pm.advance(WARNING_LINE_H)

    return paginate(
        pm,
        events,
        item_height=WARNING_LINE_H,
        heading_height=SECTION_HEADING_H + SECTION_GAP,
        draw_heading=draw_heading,
        draw_item=draw_item,
    )
