from __future__ import annotations

import logging
from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .events import ReportContext
from .report.layouts import MAX_EVENTS_IN_REPORT, MAX_WARNING_EVENTS
from .report.pdf_layout import (
    DEFAULT_FOOTER_RESERVE,
    DEFAULT_MARGIN,
    PAGE_SIZES,
    RenderSettings,
)

PACKAGE_DIR = Path(__file__).resolve().parent
"""Root of the ``inspector_report`` package."""

REPO_DIR = PACKAGE_DIR.parent
LOGGER = logging.getLogger(__name__)

MIN_MARGIN = 0.0
MAX_MARGIN = 144.0
MIN_FOOTER_RESERVE = 20.0
# Room left for content between the margins and the footer band; fits the tallest card.
MIN_CONTENT_HEIGHT = 200.0

DEFAULT_CONFIG: dict[str, Any] = {
    "report": {
        "logo_path": None,
        "page_size": "a4",
        "landscape": True,
        "margin": DEFAULT_MARGIN,
        "footer_reserve": DEFAULT_FOOTER_RESERVE,
    },
    "limits": {
        "max_events": MAX_EVENTS_IN_REPORT,
        "max_warning_events": MAX_WARNING_EVENTS,
    },
}


def documented_default_config() -> dict[str, Any]:
    """Return defaults in the shape documented by config.example.yaml."""
    return deepcopy(DEFAULT_CONFIG)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve_config_path(path_text: str, config_path: Path) -> Path:
    path = Path(path_text)
    if path.is_absolute():
        return path
    return config_path.resolve().parent / path


def _as_number(section: str, key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{section}.{key} must be a number, got {value!r}")
    return float(value)


def _as_count(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    return value


@dataclass(slots=True)
class ReportSection:
    logo_path: Path | None
    page_size: str
    landscape: bool
    margin: float
    footer_reserve: float

    def __post_init__(self) -> None:
        if self.page_size not in PAGE_SIZES:
            raise ValueError(
                f"report.page_size must be one of {sorted(PAGE_SIZES)}, got {self.page_size!r}"
            )
        if not MIN_MARGIN <= self.margin <= MAX_MARGIN:
            clamped = min(max(self.margin, MIN_MARGIN), MAX_MARGIN)
            LOGGER.warning(
                "report.margin=%s is outside %s-%s, clamped to %s",
                self.margin,
                MIN_MARGIN,
                MAX_MARGIN,
                clamped,
            )
            self.margin = clamped
        if self.footer_reserve < MIN_FOOTER_RESERVE:
            LOGGER.warning(
                "report.footer_reserve=%s is below minimum %s, clamped",
                self.footer_reserve,
                MIN_FOOTER_RESERVE,
            )
            self.footer_reserve = MIN_FOOTER_RESERVE
        max_reserve = self.page_height - 2 * self.margin - MIN_CONTENT_HEIGHT
        if self.footer_reserve > max_reserve:
            LOGGER.warning(
                "report.footer_reserve=%s leaves no room for content on a %s page, clamped to %s",
                self.footer_reserve,
                self.page_size,
                max_reserve,
            )
            self.footer_reserve = max_reserve

    @property
    def page_height(self) -> float:
        width, height = PAGE_SIZES[self.page_size]
        return float(min(width, height) if self.landscape else max(width, height))


@dataclass(slots=True)
class LimitsConfig:
    max_events: int
    max_warning_events: int

    def __post_init__(self) -> None:
        for name in ("max_events", "max_warning_events"):
            value = getattr(self, name)
            if value < 1:
                LOGGER.warning("limits.%s=%s is below minimum 1, clamped to 1", name, value)
                setattr(self, name, 1)


@dataclass(slots=True)
class ReportConfig:
    report: ReportSection
    limits: LimitsConfig
    config_path: Path

    def settings(self) -> RenderSettings:
        return RenderSettings(
            page_size=PAGE_SIZES[self.report.page_size],
            landscape=self.report.landscape,
            margin=self.report.margin,
            footer_reserve=self.report.footer_reserve,
            max_events=self.limits.max_events,
            max_warning_events=self.limits.max_warning_events,
        )

    def build_context(self, payload: Mapping[str, Any]) -> ReportContext:
        """Context for *payload* with the configured logo attached."""
        return ReportContext.from_payload(payload, logo_path=self.report.logo_path)


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a YAML object at the top level.")
        return data


def load_config(config_path: Path | None = None) -> ReportConfig:
    path = config_path or (REPO_DIR / "config.yaml")
    path = path.resolve()
    override = _read_config_file(path)
    merged = _deep_merge(DEFAULT_CONFIG, override)
    report_cfg = merged.get("report")
    limits_cfg = merged.get("limits")
    if not isinstance(report_cfg, dict):
        raise ValueError("report must be a mapping.")
    if not isinstance(limits_cfg, dict):
        raise ValueError("limits must be a mapping.")

    logo_raw = report_cfg.get("logo_path")
    if logo_raw is not None and (not isinstance(logo_raw, str) or not logo_raw.strip()):
        raise ValueError(f"report.logo_path must be a non-empty string, got {logo_raw!r}")

    config = ReportConfig(
        report=ReportSection(
            logo_path=_resolve_config_path(logo_raw, path) if logo_raw else None,
            page_size=str(report_cfg.get("page_size", "a4")).strip().lower(),
            landscape=bool(report_cfg.get("landscape", True)),
            margin=_as_number("report", "margin", report_cfg.get("margin")),
            footer_reserve=_as_number("report", "footer_reserve", report_cfg.get("footer_reserve")),
        ),
        limits=LimitsConfig(
            max_events=_as_count("limits", "max_events", limits_cfg.get("max_events")),
            max_warning_events=_as_count(
                "limits", "max_warning_events", limits_cfg.get("max_warning_events")
            ),
        ),
        config_path=path,
    )
    LOGGER.info(
        "Loaded config=%s page_size=%s landscape=%s max_events=%s logo_path=%s",
        config.config_path,
        config.report.page_size,
        config.report.landscape,
        config.limits.max_events,
        config.report.logo_path,
    )
    return config
