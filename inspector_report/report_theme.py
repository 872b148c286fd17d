from __future__ import annotations

# Neutral, print-friendly palette shared by both inspector reports.
REPORT_COLORS = {
    "ink": "#111827",
    "text_primary": "#111827",
    "text_body": "#1f2937",
    "text_secondary": "#374151",
    "text_subtle": "#4b5563",
    "text_muted": "#6b7280",
    "warning_text": "#7f1d1d",
    "border": "#d1d5db",
    "rule": "#e5e7eb",
    "surface": "#f3f4f6",
    "table_header_bg": "#e5e7eb",
    "table_zebra_bg": "#f9fafb",
}

FONT = "Helvetica"
FONT_B = "Helvetica-Bold"

FS_TITLE = 20
FS_SECTION = 13
FS_BOX_TITLE = 12
FS_META = 10
FS_CARD_TITLE = 9
FS_TABLE = 8.5
FS_CARD = 8
FS_FOOTER = 8

CARD_RADIUS = 3
BOX_RADIUS = 4
