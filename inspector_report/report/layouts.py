"""Layout presets that parametrise the single report engine.

A ``ReportLayout`` says which derived fields each section surfaces; the
pagination and drawing mechanics are shared.  Field names refer to
attributes of ``DerivedEventView`` (and ``AggregateStats`` for the summary).
"""

from __future__ import annotations

from dataclasses import dataclass

MAX_EVENTS_IN_REPORT = 500
MAX_WARNING_EVENTS = 300


@dataclass(frozen=True, slots=True)
class TableColumn:
    header: str
    field: str
    weight: float
    max_chars: int = 0


@dataclass(frozen=True, slots=True)
class CardLine:
    """One labelled line inside a detail card.

    ``optional`` lines are skipped when the value is empty; ``tone`` selects
    a theme colour; ``rule_above`` draws a separator rule above the line.
    """

    label: str
    field: str
    max_chars: int
    optional: bool = False
    tone: str = "ink"
    rule_above: bool = False


@dataclass(frozen=True, slots=True)
class CardLayout:
    height: float
    title_fields: tuple[tuple[str, int], ...]
    left_identity: tuple[tuple[str, str], ...]
    right_identity: tuple[tuple[str, str], ...]
    top_lines: tuple[CardLine, ...] = ()
    bottom_lines: tuple[CardLine, ...] = ()
    identity_chars: int = 30
    identity_gap: float = 20


@dataclass(frozen=True, slots=True)
class ReportLayout:
    key: str
    report_name: str
    columns: tuple[TableColumn, ...]
    card: CardLayout
    summary_fields: tuple[tuple[str, str], ...]
    summary_height: float
    classify_events: bool = True
    show_source: bool = False
    show_warnings: bool = False
    max_events: int = MAX_EVENTS_IN_REPORT
    max_warning_events: int = MAX_WARNING_EVENTS
    powered_by: str = "Powered by BlastGroup"
    events_heading: str = "Events"
    details_heading: str = "Event details"
    warnings_heading: str = "Diagnostics / warnings"
    empty_events_text: str = "No events available for this report."
    no_warnings_text: str = "No warnings captured in this request."

    @property
    def title(self) -> str:
        return f"{self.report_name} Report"

    @property
    def slug(self) -> str:
        return "-".join(self.report_name.lower().split())


GA4 = ReportLayout(
    key="ga4",
    report_name="GA4 Inspector",
    columns=(
        TableColumn("Timestamp", "timestamp", 0.18, 34),
        TableColumn("Event name", "name", 0.22, 34),
        TableColumn("Category", "category", 0.12),
        TableColumn("Measurement ID", "measurement_id", 0.18, 30),
        TableColumn("Page URL", "page_url", 0.30, 40),
    ),
    card=CardLayout(
        height=94,
        title_fields=(("name", 50), ("category", 0), ("timestamp", 42)),
        top_lines=(CardLine("Page URL", "page_url", 80),),
        left_identity=(
            ("Measurement ID", "measurement_id"),
            ("Client ID", "client_id"),
            ("Session ID", "session_id"),
        ),
        right_identity=(
            ("Hit number", "hit_number"),
            ("Session count", "session_count"),
            ("User ID", "user_id"),
        ),
        bottom_lines=(
            CardLine("Key params", "key_params", 170, optional=True, rule_above=True),
        ),
    ),
    summary_fields=(("Total events", "total_events"), ("Time range", "time_range")),
    summary_height=74,
)

MIXPANEL = ReportLayout(
    key="mixpanel",
    report_name="Mixpanel Inspector",
    columns=(
        TableColumn("Timestamp", "timestamp", 0.17, 34),
        TableColumn("Event name", "name", 0.22, 34),
        TableColumn("Source", "source", 0.12, 18),
        TableColumn("Endpoint", "endpoint", 0.12, 18),
        TableColumn("Distinct ID", "distinct_id", 0.15, 24),
        TableColumn("Page URL", "reported_page_url", 0.22, 34),
    ),
    card=CardLayout(
        height=108,
        title_fields=(("name", 48), ("timestamp", 45)),
        left_identity=(
            ("Project token", "project_token"),
            ("Distinct ID", "reported_distinct_id"),
            ("Session ID", "reported_session_id"),
        ),
        right_identity=(
            ("Client ID", "reported_client_id"),
            ("Measurement ID", "measurement_id"),
            ("Tab ID", "tab_id"),
        ),
        bottom_lines=(
            CardLine("Source", "source_endpoint", 0),
            CardLine("Page URL", "reported_page_url", 95),
            CardLine("Params", "params", 180),
            CardLine("Warnings", "warnings_text", 180, optional=True, tone="warning_text"),
        ),
        identity_chars=35,
        identity_gap=16,
    ),
    summary_fields=(
        ("Total events", "total_events"),
        ("Unique event names", "unique_names"),
        ("Warning count", "warning_count"),
        ("Time range", "time_range"),
    ),
    summary_height=86,
    classify_events=False,
    show_source=True,
    show_warnings=True,
)

LAYOUTS: dict[str, ReportLayout] = {layout.key: layout for layout in (GA4, MIXPANEL)}


def get_layout(name: str) -> ReportLayout:
    try:
        return LAYOUTS[name.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown report layout {name!r}; expected one of {sorted(LAYOUTS)}"
        ) from None
