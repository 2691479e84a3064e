"""Spreadsheet sources for catalog synchronization."""

from catalog.sources.layout import SheetLayout, catalog_layouts
from catalog.sources.sheets import GoogleSheetSource, SheetsClient
from catalog.sources.snapshot import (
    SheetSource,
    SourceSnapshot,
    StaticSource,
    cell_number,
    cell_text,
    drive_image_url,
    excel_serial_to_date,
)

__all__ = [
    "GoogleSheetSource",
    "SheetLayout",
    "SheetSource",
    "SheetsClient",
    "SourceSnapshot",
    "StaticSource",
    "catalog_layouts",
    "cell_number",
    "cell_text",
    "drive_image_url",
    "excel_serial_to_date",
]
