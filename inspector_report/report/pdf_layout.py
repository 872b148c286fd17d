"""Page geometry, the drawing cursor and the page-break decision.

``PageManager`` owns the canvas for one document.  Positions handed to it
are measured top-down from the page's top edge, the way the report is
laid out; it converts to ReportLab's bottom-left origin when drawing.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, LETTER, landscape
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from ..report_theme import FONT, REPORT_COLORS

PAGE_SIZES: dict[str, tuple[float, float]] = {"a4": A4, "letter": LETTER}

DEFAULT_MARGIN = 40.0
DEFAULT_FOOTER_RESERVE = 50.0
ELLIPSIS = "..."

# Share of the font size between the top of a text line and its baseline.
_BASELINE_RATIO = 0.8

PageListener = Callable[[int], None]


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------


def fit_rect_preserve_aspect(
    src_w: float,
    src_h: float,
    box_x: float,
    box_y: float,
    box_w: float,
    box_h: float,
) -> tuple[float, float, float, float]:
    """Return (x, y, w, h) fitted inside box while preserving src aspect."""
    if src_w <= 0 or src_h <= 0:
        return box_x, box_y, box_w, box_h
    src_ratio = src_w / src_h
    box_ratio = box_w / box_h if box_h else src_ratio
    if box_ratio > src_ratio:
        h = box_h
        w = h * src_ratio
        x = box_x + (box_w - w) / 2
        y = box_y
    else:
        w = box_w
        h = w / src_ratio
        x = box_x
        y = box_y + (box_h - h) / 2
    return x, y, w, h


def split_widths(total: float, weights: tuple[float, ...]) -> list[float]:
    """Floor each share of *total*; the rounding remainder goes to the last column."""
    widths = [float(int(total * weight)) for weight in weights]
    if widths:
        widths[-1] += total - sum(widths)
    return widths


def printable(text: str) -> str:
    """Replace characters the standard PDF fonts cannot encode."""
    return text.encode("cp1252", errors="replace").decode("cp1252")


def fit_text(text: str, font: str, size: float, width: float) -> str:
    """Shorten *text* with an ellipsis until it fits *width* points."""
    if stringWidth(text, font, size) <= width:
        return text
    lo, hi = 0, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if stringWidth(text[:mid] + ELLIPSIS, font, size) <= width:
            lo = mid
        else:
            hi = mid - 1
    return text[:lo] + ELLIPSIS if lo else ""


@dataclass(frozen=True, slots=True)
class PageGeometry:
    width: float
    height: float
    margin_top: float = DEFAULT_MARGIN
    margin_right: float = DEFAULT_MARGIN
    margin_bottom: float = DEFAULT_MARGIN
    margin_left: float = DEFAULT_MARGIN
    footer_reserve: float = DEFAULT_FOOTER_RESERVE

    @property
    def page_size(self) -> tuple[float, float]:
        return self.width, self.height

    @property
    def left(self) -> float:
        return self.margin_left

    @property
    def content_width(self) -> float:
        return self.width - self.margin_left - self.margin_right

    @property
    def bottom_limit(self) -> float:
        """Lowest y a block may reach before the footer band."""
        return self.height - self.margin_bottom - self.footer_reserve

    @property
    def footer_y(self) -> float:
        return self.height - self.margin_bottom - 10


@dataclass(frozen=True, slots=True)
class RenderSettings:
    """Per-document page and cap settings; ``None`` caps defer to the layout."""

    page_size: tuple[float, float] = A4
    landscape: bool = True
    margin: float = DEFAULT_MARGIN
    footer_reserve: float = DEFAULT_FOOTER_RESERVE
    max_events: int | None = None
    max_warning_events: int | None = None

    def geometry(self) -> PageGeometry:
        width, height = landscape(self.page_size) if self.landscape else self.page_size
        return PageGeometry(
            width=float(width),
            height=float(height),
            margin_top=self.margin,
            margin_right=self.margin,
            margin_bottom=self.margin,
            margin_left=self.margin,
            footer_reserve=self.footer_reserve,
        )


@dataclass(slots=True)
class Cursor:
    page_index: int = 0
    y: float = 0.0


# ---------------------------------------------------------------------------
# Page manager
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class PageManager:
    canvas: Canvas
    geometry: PageGeometry
    cursor: Cursor = field(default_factory=Cursor)
    headings: list[tuple[int, str]] = field(default_factory=list)
    _listeners: list[PageListener] = field(default_factory=list)
    _started: bool = False

    @property
    def page_number(self) -> int:
        return self.cursor.page_index + 1

    @property
    def y(self) -> float:
        return self.cursor.y

    def add_page_listener(self, listener: PageListener) -> None:
        self._listeners.append(listener)

    def _page_added(self) -> None:
        self.cursor.y = self.geometry.margin_top
        for listener in self._listeners:
            listener(self.page_number)

    def start(self) -> None:
        """Allocate the first page."""
        if self._started:
            raise RuntimeError("PageManager already started")
        self._started = True
        self.cursor.page_index = 0
        self._page_added()

    def add_page(self) -> None:
        if not self._started:
            self.start()
            return
        self.canvas.showPage()
        self.cursor.page_index += 1
        self._page_added()

    def finish(self) -> int:
        """Close the last page and return the number of pages."""
        self.canvas.showPage()
        return self.page_number

    def fits(self, height: float) -> bool:
        return self.cursor.y + height <= self.geometry.bottom_limit

    def ensure_space(self, height: float) -> bool:
        """Break the page when *height* does not fit; return ``True`` on a break."""
        if self.fits(height):
            return False
        self.add_page()
        return True

    def advance(self, dy: float) -> None:
        if dy < 0:
            raise ValueError(f"cursor only moves downward, got dy={dy!r}")
        self.cursor.y += dy

    def advance_to(self, y: float) -> None:
        self.cursor.y = max(self.cursor.y, y)

    def record_heading(self, text: str) -> None:
        self.headings.append((self.page_number, text))

    # -- drawing primitives (top-down coordinates) --------------------------

    def _pdf_y(self, y_top: float) -> float:
        return self.geometry.height - y_top

    def text(
        self,
        x: float,
        y_top: float,
        text: str,
        *,
        font: str = FONT,
        size: float = 10,
        color: str = REPORT_COLORS["ink"],
        width: float | None = None,
        align: str = "left",
    ) -> None:
        """Draw a single line whose top edge sits at *y_top*."""
        line = printable(text)
        if width is not None:
            line = fit_text(line, font, size, width)
        c = self.canvas
        c.setFillColor(colors.HexColor(color))
        c.setFont(font, size)
        baseline = self._pdf_y(y_top + size * _BASELINE_RATIO)
        if align == "right" and width is not None:
            c.drawRightString(x + width, baseline, line)
        else:
            c.drawString(x, baseline, line)

    def rect(
        self,
        x: float,
        y_top: float,
        w: float,
        h: float,
        *,
        fill: str | None = None,
        stroke: str | None = None,
        radius: float = 0,
        line_width: float = 0.6,
    ) -> None:
        c = self.canvas
        c.saveState()
        if fill:
            c.setFillColor(colors.HexColor(fill))
        if stroke:
            c.setStrokeColor(colors.HexColor(stroke))
            c.setLineWidth(line_width)
        y = self._pdf_y(y_top + h)
        if radius:
            c.roundRect(x, y, w, h, radius, stroke=1 if stroke else 0, fill=1 if fill else 0)
        else:
            c.rect(x, y, w, h, stroke=1 if stroke else 0, fill=1 if fill else 0)
        c.restoreState()

    def hline(
        self, x1: float, x2: float, y: float, *, color: str, line_width: float = 0.3
    ) -> None:
        c = self.canvas
        c.saveState()
        c.setStrokeColor(colors.HexColor(color))
        c.setLineWidth(line_width)
        c.line(x1, self._pdf_y(y), x2, self._pdf_y(y))
        c.restoreState()

    def image(self, path: Path, x: float, y_top: float, box_w: float, box_h: float) -> None:
        """Draw the image at *path* fitted into the box; errors propagate."""
        reader = ImageReader(str(path))
        src_w, src_h = reader.getSize()
        fx, fy, fw, fh = fit_rect_preserve_aspect(src_w, src_h, x, y_top, box_w, box_h)
        self.canvas.drawImage(reader, fx, self._pdf_y(fy + fh), width=fw, height=fh, mask="auto")
