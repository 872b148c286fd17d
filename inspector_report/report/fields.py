"""Derived display values for a single event.

All derivation is pure and depends only on the ``EventRecord``; views are
recomputed whenever a renderer needs them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..events import EventRecord
from .text import FALLBACK_VALUE, clean, format_timestamp, truncate_for_display

UNKNOWN_EVENT_NAME = "(unknown)"
PARAM_SEPARATOR = " | "

MAX_WARNINGS_PER_EVENT = 25
MAX_WARNING_LENGTH = 500
MAX_SERIALIZED_PARAMS = 25

CATEGORY_PAGE_VIEW = "Page view"
CATEGORY_ECOMMERCE = "E-commerce"
CATEGORY_ENGAGEMENT = "Engagement"
CATEGORY_OTHER = "Other"

PAGE_VIEW_EVENTS = frozenset({"page_view", "first_visit", "session_start"})
ECOMMERCE_EVENTS = frozenset(
    {
        "view_promotion",
        "view_item",
        "view_item_list",
        "select_item",
        "select_promotion",
        "add_to_cart",
        "add_to_wishlist",
        "remove_from_cart",
        "begin_checkout",
        "add_payment_info",
        "add_shipping_info",
        "purchase",
        "refund",
        "view_cart",
    }
)
ENGAGEMENT_EVENTS = frozenset(
    {
        "login",
        "sign_up",
        "share",
        "scroll",
        "file_download",
        "video_start",
        "video_progress",
        "video_complete",
        "form_start",
        "form_submit",
    }
)


def category(event_name: object) -> str:
    normalized = str(event_name or "").strip().lower()
    if normalized in PAGE_VIEW_EVENTS:
        return CATEGORY_PAGE_VIEW
    if normalized in ECOMMERCE_EVENTS:
        return CATEGORY_ECOMMERCE
    if normalized in ENGAGEMENT_EVENTS:
        return CATEGORY_ENGAGEMENT
    return CATEGORY_OTHER


# ---------------------------------------------------------------------------
# Parameter access
# ---------------------------------------------------------------------------


def params_of(event: EventRecord) -> Mapping[str, Any]:
    params = event.params
    return params if isinstance(params, Mapping) else {}


def get_param(event: EventRecord, *keys: str) -> Any:
    """Return the first non-null parameter among *keys*, or ``None``."""
    params = params_of(event)
    for key in keys:
        value = params.get(key)
        if value is not None:
            return value
    return None


def resolve_page_url(event: EventRecord) -> str:
    if event.page_url:
        return clean(event.page_url)
    return clean(get_param(event, "page_location"))


def items_summary(items: object) -> str:
    if isinstance(items, (list, tuple)):
        if not items:
            return "0 items"
        first = items[0]
        first_name = ""
        if isinstance(first, Mapping) and first.get("item_name"):
            first_name = f" ({clean(first['item_name'], '', 80)})"
        return f"{len(items)} items{first_name}"
    if isinstance(items, Mapping):
        item_name = clean(items["item_name"], "", 80) if items.get("item_name") else ""
        return f"1 item ({item_name})" if item_name else "1 item"
    return FALLBACK_VALUE


def key_params_summary(event: EventRecord, event_category: str) -> str:
    """Summarise the parameters that matter for *event_category*.

    Only e-commerce and page-view events have a summary; every other
    category returns an empty string.
    """
    if not params_of(event):
        return ""
    parts: list[str] = []
    if event_category == CATEGORY_ECOMMERCE:
        for key, max_length in (("transaction_id", 80), ("value", 40), ("currency", 40)):
            value = get_param(event, key)
            if value is not None:
                parts.append(f"{key}: {clean(value, FALLBACK_VALUE, max_length)}")
        items = get_param(event, "items")
        if items is not None:
            parts.append(f"items: {items_summary(items)}")
    elif event_category == CATEGORY_PAGE_VIEW:
        for key, max_length in (("page_location", 70), ("page_title", 50), ("page_referrer", 60)):
            value = get_param(event, key)
            if value is not None:
                parts.append(f"{key}: {truncate_for_display(value, max_length)}")
    return PARAM_SEPARATOR.join(parts)


def serialize_params(params: object) -> str:
    if not isinstance(params, Mapping) or not params:
        return FALLBACK_VALUE
    entries = list(params.items())[:MAX_SERIALIZED_PARAMS]
    return PARAM_SEPARATOR.join(
        f"{clean(key, 'key', 40)}={clean(value, 'null', 80)}" for key, value in entries
    )


def warnings_of(event: EventRecord) -> list[str]:
    raw = event.warnings
    if not isinstance(raw, (list, tuple)):
        return []
    cleaned = (
        clean(warning, "", MAX_WARNING_LENGTH) for warning in raw if warning not in (None, "")
    )
    return [warning for warning in cleaned if warning][:MAX_WARNINGS_PER_EVENT]


# ---------------------------------------------------------------------------
# Derived view
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DerivedEventView:
    name: str
    category: str
    timestamp: str
    page_url: str
    measurement_id: str
    client_id: str
    session_id: str
    distinct_id: str
    project_token: str
    tab_id: str
    source: str
    endpoint: str
    hit_number: str
    session_count: str
    user_id: str
    key_params: str
    params: str
    warnings: tuple[str, ...]
    # Record values exactly as captured, without parameter or identity fallbacks.
    reported_page_url: str = FALLBACK_VALUE
    reported_client_id: str = FALLBACK_VALUE
    reported_session_id: str = FALLBACK_VALUE
    reported_distinct_id: str = FALLBACK_VALUE

    @property
    def warnings_text(self) -> str:
        return PARAM_SEPARATOR.join(self.warnings)

    @property
    def source_endpoint(self) -> str:
        return (
            f"{truncate_for_display(self.source, 25)}"
            f"{PARAM_SEPARATOR}Endpoint: {truncate_for_display(self.endpoint, 25)}"
        )


def derive_view(event: EventRecord, *, classify: bool = True) -> DerivedEventView:
    """Compute every display value a renderer may surface for *event*.

    With ``classify=False`` the event is not categorised (product-analytics
    layouts) and no key-parameter summary is produced.
    """
    name = clean(event.event_name, UNKNOWN_EVENT_NAME, 256)
    event_category = category(name) if classify else ""
    return DerivedEventView(
        name=name,
        category=event_category,
        timestamp=format_timestamp(event.timestamp),
        page_url=resolve_page_url(event),
        measurement_id=clean(event.measurement_id, FALLBACK_VALUE, 120),
        client_id=clean(event.client_id or get_param(event, "client_id"), FALLBACK_VALUE, 120),
        session_id=clean(event.session_id or get_param(event, "session_id"), FALLBACK_VALUE, 120),
        distinct_id=clean(event.distinct_id or event.client_id, FALLBACK_VALUE, 120),
        project_token=clean(event.project_token, FALLBACK_VALUE, 90),
        tab_id=clean(event.tab_id, FALLBACK_VALUE, 40),
        source=clean(event.source, FALLBACK_VALUE, 80),
        endpoint=clean(event.endpoint_type, FALLBACK_VALUE, 80),
        hit_number=clean(get_param(event, "hit_number", "_n"), FALLBACK_VALUE, 40),
        session_count=clean(
            get_param(event, "session_count", "sct", "ga_session_number"), FALLBACK_VALUE, 40
        ),
        user_id=clean(get_param(event, "user_id"), FALLBACK_VALUE, 80),
        key_params=key_params_summary(event, event_category) if classify else "",
        params=serialize_params(event.params),
        warnings=tuple(warnings_of(event)),
        reported_page_url=clean(event.page_url),
        reported_client_id=clean(event.client_id, FALLBACK_VALUE, 120),
        reported_session_id=clean(event.session_id, FALLBACK_VALUE, 120),
        reported_distinct_id=clean(event.distinct_id, FALLBACK_VALUE, 120),
    )
