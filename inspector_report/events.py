"""Input data model: captured analytics events and the report context.

Records are built once per request from the (already validated) JSON
payload and are never mutated while a report is rendered.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

DEFAULT_SOURCE = "extension"

_SCALAR_FIELDS: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "timestamp": ("timestamp",),
    "event_name": ("eventName", "event_name"),
    "measurement_id": ("measurementId", "measurement_id"),
    "client_id": ("clientId", "client_id"),
    "session_id": ("sessionId", "session_id"),
    "distinct_id": ("distinctId", "distinct_id"),
    "project_token": ("projectToken", "project_token"),
    "page_url": ("pageUrl", "page_url"),
    "source": ("source",),
    "endpoint_type": ("endpointType", "endpoint_type"),
}


def _pick(payload: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def _optional_int(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True, slots=True)
class EventRecord:
    """One captured analytics hit.  Every field is optional."""

    id: str | None = None
    timestamp: str | None = None
    event_name: str | None = None
    measurement_id: str | None = None
    client_id: str | None = None
    session_id: str | None = None
    distinct_id: str | None = None
    project_token: str | None = None
    page_url: str | None = None
    source: str | None = None
    endpoint_type: str | None = None
    tab_id: int | None = None
    params: Any = None
    warnings: Any = None

    @classmethod
    def from_dict(cls, payload: object) -> EventRecord:
        """Build a record from a camelCase or snake_case mapping.

        Scalar fields keep strings, numbers and booleans (as text) and drop
        anything else.  ``params`` is kept only when it is a mapping and
        ``warnings`` only when it is a list.
        """
        if not isinstance(payload, Mapping):
            return cls()
        values: dict[str, Any] = {
            name: _optional_text(_pick(payload, keys)) for name, keys in _SCALAR_FIELDS.items()
        }
        params = _pick(payload, ("params",))
        warnings = _pick(payload, ("warnings",))
        return cls(
            **values,
            tab_id=_optional_int(_pick(payload, ("tabId", "tab_id"))),
            params=MappingProxyType(dict(params)) if isinstance(params, Mapping) else None,
            warnings=tuple(warnings) if isinstance(warnings, (list, tuple)) else None,
        )


@dataclass(frozen=True, slots=True)
class ReportContext:
    """Everything one render needs besides the layout."""

    events: tuple[EventRecord, ...] = ()
    session_info: Mapping[str, Any] = field(default_factory=dict)
    generated_at: str = ""
    source: str = DEFAULT_SOURCE
    logo_path: Path | None = None

    @property
    def session_page_url(self) -> str | None:
        return _optional_text(_pick(self.session_info, ("pageUrl", "page_url")))

    @property
    def session_user_agent(self) -> str | None:
        return _optional_text(_pick(self.session_info, ("userAgent", "user_agent")))

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        *,
        logo_path: Path | str | None = None,
    ) -> ReportContext:
        """Build a context from a request body shaped like the extension's export."""
        raw_events = payload.get("events")
        events: Sequence[Any] = raw_events if isinstance(raw_events, (list, tuple)) else ()
        session_info = payload.get("sessionInfo", payload.get("session_info"))
        return cls(
            events=tuple(
                event if isinstance(event, EventRecord) else EventRecord.from_dict(event)
                for event in events
            ),
            session_info=dict(session_info) if isinstance(session_info, Mapping) else {},
            generated_at=str(payload.get("generatedAt", payload.get("generated_at")) or ""),
            source=str(payload.get("source") or DEFAULT_SOURCE),
            logo_path=Path(logo_path) if logo_path else None,
        )
