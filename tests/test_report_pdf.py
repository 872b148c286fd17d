from __future__ import annotations

import logging
from datetime import UTC, datetime
from io import BytesIO
from pathlib import Path

import pytest
from builders import GENERATED_AT, GENERATED_TEXT, make_context, make_event, make_events
from conftest import extract_pdf_pages, extract_pdf_text, footer_page_numbers, render_to_bytes
from PIL import Image
from pypdf import PdfReader
from reportlab.lib.pagesizes import A4, LETTER

from inspector_report.report import (
    GA4,
    MIXPANEL,
    RenderSettings,
    RenderStats,
    ReportRenderError,
    build_report_pdf,
    render_report,
    report_filename,
)

TABLE_HEADERS = {
    GA4.key: "Timestamp | Event name | Category | Measurement ID | Page URL",
    MIXPANEL.key: "Timestamp | Event name | Source | Endpoint | Distinct ID | Page URL",
}


def _assert_heading_once_per_page(stats: RenderStats, family: str) -> list[int]:
    entries = [(page, text) for page, text in stats.headings if text.startswith(family)]
    pages = [page for page, _ in entries]
    assert len(pages) == len(set(pages))
    if pages:
        assert pages == list(range(pages[0], pages[-1] + 1))
        assert entries[0][1] == family
        assert all(text == f"{family} (cont.)" for _, text in entries[1:])
    return pages


def _assert_footers(pdf: bytes, stats: RenderStats) -> None:
    pages = extract_pdf_pages(pdf)
    assert len(pages) == stats.pages
    assert stats.footer_pages == list(range(1, stats.pages + 1))
    for number, text in enumerate(pages, start=1):
        assert footer_page_numbers(text) == [number]


class _BrokenStream:
    def write(self, _data: bytes) -> int:
        raise OSError("disk full")


# -- scenario A: no events ------------------------------------------------


@pytest.mark.parametrize("layout", [GA4, MIXPANEL], ids=["ga4", "mixpanel"])
def test_empty_report_has_header_summary_and_message_only(layout) -> None:
    pdf, stats = render_to_bytes(make_context([]), layout)
    text = extract_pdf_text(pdf)

    assert pdf.startswith(b"%PDF")
    assert stats.pages == 1
    assert (stats.table_rows, stats.detail_cards, stats.warning_lines) == (0, 0, 0)
    assert stats.notices == []
    assert layout.title in text
    assert "Powered by BlastGroup" in text
    assert f"Generated at: {GENERATED_TEXT}" in text
    assert "Summary" in text
    assert "Total events: 0" in text
    assert "Time range: n/a" in text
    assert "No events available for this report." in text
    assert "Event details" not in text
    assert "Diagnostics / warnings" not in text
    assert "No warnings captured" not in text
    assert [heading for _, heading in stats.headings] == ["Events"]
    _assert_footers(pdf, stats)


def test_empty_mixpanel_summary_shows_all_zero_fields() -> None:
    pdf, _ = render_to_bytes(make_context([]), MIXPANEL)
    text = extract_pdf_text(pdf)
    assert "Unique event names: 0" in text
    assert "Warning count: 0" in text
    assert "Source: extension" in text


# -- scenario B: small mixed batch -----------------------------------------


def _scenario_b_events():
    return [
        make_event(
            0,
            timestamp="2024-01-05T10:00:00Z",
            eventName="page_view",
            warnings=["Missing token", "Bad distinct id"],
        ),
        make_event(1, timestamp="not-a-timestamp", eventName="click"),
        make_event(2, timestamp="2024-01-05T12:30:00Z", eventName="purchase"),
    ]


def test_scenario_mixed_batch_mixpanel() -> None:
    pdf, stats = render_to_bytes(make_context(_scenario_b_events()), MIXPANEL)
    text = extract_pdf_text(pdf)

    assert stats.total_events == 3
    assert stats.table_rows == 3
    assert stats.detail_cards == 3
    assert stats.warning_lines == 1
    assert stats.notices == []
    assert "Total events: 3" in text
    assert "Warning count: 2" in text
    assert "Unique event names: 3" in text
    assert "Time range: Jan 5, 2024, 10:00:00 AM to Jan 5, 2024, 12:30:00 PM" in text
    assert "Diagnostics / warnings" in text
    assert "1. page_view @ Jan 5, 2024, 10:00:00 AM => Missing token | Bad distinct id" in text
    assert "Warnings: Missing token | Bad distinct id" in text
    assert "No warnings captured" not in text
    _assert_footers(pdf, stats)


def test_scenario_mixed_batch_ga4_has_no_warnings_section() -> None:
    pdf, stats = render_to_bytes(make_context(_scenario_b_events()), GA4)
    text = extract_pdf_text(pdf)
    assert stats.warning_lines == 0
    assert "Diagnostics / warnings" not in text
    assert "Category" in text
    assert "E-commerce" in text


# -- scenario C: over the event cap ----------------------------------------


@pytest.fixture(scope="module")
def capped_report() -> tuple[bytes, RenderStats]:
    return render_to_bytes(make_context(make_events(600)), MIXPANEL)


def test_capped_report_counts(capped_report) -> None:
    _, stats = capped_report
    assert stats.total_events == 600
    assert stats.table_rows == 500
    assert stats.detail_cards == 500
    assert stats.warning_lines == 0
    assert stats.notices == [
        "Showing first 500 of 600 events. Export a smaller time range for full detail.",
        "Details limited to first 500 of 600 events.",
    ]


def test_capped_report_text(capped_report) -> None:
    pdf, _ = capped_report
    text = extract_pdf_text(pdf)
    assert "Total events: 600" in text
    assert "Showing first 500 of 600 events." in text
    assert "Details limited to first 500 of 600 events." in text
    assert "No warnings captured in this request." in text
    assert "Diagnostics limited" not in text


def test_capped_report_headings_once_per_page(capped_report) -> None:
    pdf, stats = capped_report
    table_pages = [page for page, text in stats.headings if text == TABLE_HEADERS[MIXPANEL.key]]
    assert len(table_pages) == len(set(table_pages)) > 1
    detail_pages = _assert_heading_once_per_page(stats, "Event details")
    assert len(detail_pages) > 1
    assert detail_pages[0] >= table_pages[-1]
    for text in extract_pdf_pages(pdf):
        assert text.count("Event details") <= 1


def test_capped_report_footers(capped_report) -> None:
    pdf, stats = capped_report
    _assert_footers(pdf, stats)


def test_exactly_at_cap_shows_no_notice() -> None:
    _, stats = render_to_bytes(make_context(make_events(500)), GA4)
    assert stats.table_rows == 500
    assert stats.detail_cards == 500
    assert stats.notices == []


def test_settings_override_event_cap() -> None:
    settings = RenderSettings(max_events=3)
    pdf, stats = render_to_bytes(make_context(make_events(4)), GA4, settings)
    assert (stats.table_rows, stats.detail_cards) == (3, 3)
    assert stats.notices == [
        "Showing first 3 of 4 events. Export a smaller time range for full detail.",
        "Details limited to first 3 of 4 events.",
    ]
    assert "Total events: 4" in extract_pdf_text(pdf)

    _, at_cap = render_to_bytes(make_context(make_events(3)), GA4, settings)
    assert at_cap.notices == []


def test_warning_listing_cap() -> None:
    events = make_events(3, warnings=["Missing token"])
    settings = RenderSettings(max_warning_events=2)
    pdf, stats = render_to_bytes(make_context(events), MIXPANEL, settings)
    assert stats.warning_lines == 2
    assert stats.notices == ["Diagnostics limited to first 2 of 3 events with warnings."]
    assert "Diagnostics limited to first 2 of 3 events with warnings." in extract_pdf_text(pdf)


def test_warning_listing_paginates_with_continued_heading() -> None:
    events = make_events(120, warnings=["Missing token"])
    pdf, stats = render_to_bytes(make_context(events), MIXPANEL)
    assert stats.warning_lines == 120
    pages = _assert_heading_once_per_page(stats, "Diagnostics / warnings")
    assert len(pages) >= 2
    _assert_footers(pdf, stats)


# -- content ----------------------------------------------------------------


def test_ga4_card_content() -> None:
    pdf, _ = render_to_bytes(make_context([make_event(0)]), GA4)
    text = extract_pdf_text(pdf)
    assert "page_view | Page view | Jan 5, 2024, 10:00:00 AM" in text
    assert "Page URL: https://shop.example.com/p/0" in text
    assert "Measurement ID: G-TEST123" in text
    assert "Hit number: 1" in text
    assert "Session count: 2" in text
    assert "Key params: page_title: Home" in text


def test_mixpanel_card_content() -> None:
    event = make_event(0, distinctId="user-42", projectToken="tok-abc")
    pdf, _ = render_to_bytes(make_context([event]), MIXPANEL)
    text = extract_pdf_text(pdf)
    assert "Project token: tok-abc" in text
    assert "Distinct ID: user-42" in text
    assert "Tab ID: 7" in text
    assert "Source: web | Endpoint: collect" in text
    assert "Params: page_title=Home | _n=1 | sct=2" in text
    assert "Warnings:" not in text


def test_metadata_lines_from_session_info() -> None:
    context = make_context(
        [make_event()],
        session_info={"pageUrl": "https://shop.example.com/checkout", "userAgent": "Mozilla/5.0"},
    )
    text = extract_pdf_text(render_to_bytes(context, GA4)[0])
    assert "Page URL: https://shop.example.com/checkout" in text
    assert "User agent: Mozilla/5.0" in text
    assert "Source: extension" not in text


def test_unencodable_text_is_replaced() -> None:
    pdf, stats = render_to_bytes(make_context([make_event(eventName="購入")]), GA4)
    assert stats.table_rows == 1
    assert "??" in extract_pdf_text(pdf)


def test_page_size_defaults_to_a4_landscape() -> None:
    pdf, _ = render_to_bytes(make_context([]), GA4)
    box = PdfReader(BytesIO(pdf)).pages[0].mediabox
    assert float(box.width) == pytest.approx(A4[1], abs=0.01)
    assert float(box.height) == pytest.approx(A4[0], abs=0.01)


def test_page_size_from_settings() -> None:
    pdf, _ = render_to_bytes(make_context([]), GA4, RenderSettings(page_size=LETTER))
    box = PdfReader(BytesIO(pdf)).pages[0].mediabox
    assert float(box.width) == pytest.approx(792)
    assert float(box.height) == pytest.approx(612)


def test_output_is_deterministic() -> None:
    context = make_context(make_events(5))
    assert build_report_pdf(context, MIXPANEL) == build_report_pdf(context, MIXPANEL)


# -- logo -------------------------------------------------------------------


def test_logo_is_drawn_when_readable(tmp_path: Path) -> None:
    logo = tmp_path / "logo.png"
    Image.new("RGB", (300, 100), "navy").save(logo)
    _, stats = render_to_bytes(make_context([], logo_path=logo), GA4)
    assert stats.logo_drawn is True


def test_missing_logo_is_omitted_with_warning(tmp_path: Path, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="inspector_report.report.pdf_sections"):
        pdf, stats = render_to_bytes(make_context([], logo_path=tmp_path / "nope.png"), GA4)
    assert stats.logo_drawn is False
    assert "Report logo not found" in caplog.text
    assert "GA4 Inspector Report" in extract_pdf_text(pdf)


def test_corrupt_logo_is_omitted_with_warning(tmp_path: Path, caplog) -> None:
    logo = tmp_path / "logo.png"
    logo.write_bytes(b"definitely not a png")
    with caplog.at_level(logging.WARNING, logger="inspector_report.report.pdf_sections"):
        _, stats = render_to_bytes(make_context([make_event()], logo_path=logo), MIXPANEL)
    assert stats.logo_drawn is False
    assert stats.table_rows == 1
    assert "Could not draw report logo" in caplog.text


# -- errors and logging -------------------------------------------------------


def test_stream_failure_raises_render_error(caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="inspector_report.report.pdf_builder"):
        with pytest.raises(ReportRenderError) as excinfo:
            render_report(make_context(make_events(2)), _BrokenStream(), GA4)
    assert isinstance(excinfo.value.__cause__, OSError)
    errors = [record for record in caplog.records if record.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert errors[0].exc_info is not None


def test_render_logs_summary(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="inspector_report.report.pdf_builder"):
        render_report(make_context(make_events(2)), BytesIO(), GA4)
    assert "Rendered GA4 Inspector Report: events=2 pages=" in caplog.text


# -- filenames ----------------------------------------------------------------


def test_report_filename_uses_utc_date() -> None:
    assert report_filename(GA4, GENERATED_AT) == "ga4-inspector-report-2024-01-05.pdf"
    assert (
        report_filename(MIXPANEL, "2024-01-05T23:00:00-05:00")
        == "mixpanel-inspector-report-2024-01-06.pdf"
    )


def test_report_filename_unparseable_uses_today() -> None:
    today = datetime.now(UTC).date().isoformat()
    assert report_filename(GA4, "garbage") == f"ga4-inspector-report-{today}.pdf"


def test_out_of_range_timestamps_degrade_to_fallback() -> None:
    odd = "0001-01-01T00:00:00+01:00"
    context = make_context([make_event(timestamp=odd)], generated_at="9999-12-31T23:59:59-01:00")
    pdf, stats = render_to_bytes(context, MIXPANEL)
    text = extract_pdf_text(pdf)
    assert stats.table_rows == 1
    assert "Time range: n/a" in text
    assert "Generated at: n/a" in text
    today = datetime.now(UTC).date().isoformat()
    assert report_filename(MIXPANEL, odd) == f"mixpanel-inspector-report-{today}.pdf"


def test_mixpanel_card_shows_record_identities_only() -> None:
    event = make_event(
        0,
        pageUrl=None,
        sessionId=None,
        params={"page_location": "https://from-params.example", "session_id": "param-session"},
    )
    text = extract_pdf_text(render_to_bytes(make_context([event]), MIXPANEL)[0])
    assert "Distinct ID: n/a" in text
    assert "Session ID: n/a" in text
    assert "Page URL: n/a" in text
    assert "Client ID: client-0" in text
