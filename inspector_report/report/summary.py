"""Report-level statistics computed once over the full event list."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..events import EventRecord
from .fields import warnings_of
from .text import FALLBACK_VALUE, clean, format_datetime, parse_timestamp


@dataclass(frozen=True, slots=True)
class AggregateStats:
    total_events: int
    unique_names: int
    warning_count: int
    time_range: str
    events_with_warnings: int

    def value_for(self, key: str) -> str:
        return str(getattr(self, key))


def time_range(events: Sequence[EventRecord]) -> str:
    """Return ``"<earliest> to <latest>"`` over parseable timestamps.

    Events whose timestamp does not parse are skipped; when none parse the
    whole range is the single fallback placeholder.
    """
    parsed = [moment for event in events if (moment := parse_timestamp(event.timestamp))]
    if not parsed:
        return FALLBACK_VALUE
    return f"{format_datetime(min(parsed))} to {format_datetime(max(parsed))}"


def unique_event_names(events: Sequence[EventRecord]) -> int:
    names = {clean(event.event_name, "", 256).strip().lower() for event in events}
    names.discard("")
    return len(names)


def compute_stats(events: Sequence[EventRecord]) -> AggregateStats:
    warning_counts = [len(warnings_of(event)) for event in events]
    return AggregateStats(
        total_events=len(events),
        unique_names=unique_event_names(events),
        warning_count=sum(warning_counts),
        time_range=time_range(events),
        events_with_warnings=sum(1 for count in warning_counts if count),
    )
