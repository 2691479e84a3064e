"""Normalized source snapshots and cell helpers.

The Sheets API returns one list per requested column. A SourceSnapshot
turns those columns into row dicts aligned by index so the reconciler can
walk rows in source order.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterator, Mapping, Protocol, Sequence

from catalog.sources.layout import SheetLayout

# Day zero of spreadsheet serial dates (Lotus 1-2-3 leap-year bug included)
EXCEL_EPOCH = date(1899, 12, 30)

_DRIVE_FILE_PREFIX = "https://drive.google.com/file/d/"


@dataclass(frozen=True)
class SourceSnapshot:
    """Rows of one layout, in source order.

    Attributes:
        fields: Semantic field names, in layout order
        rows: One dict per source row; missing cells are None
    """

    fields: tuple[str, ...]
    rows: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def from_columns(cls, fields: Sequence[str], columns: Sequence[Sequence[Any]]) -> "SourceSnapshot":
        """Align columns by row index.

        The row count is the longest column; shorter columns pad with None.
        """
        if len(fields) != len(columns):
            raise ValueError(f"Expected {len(fields)} columns, got {len(columns)}")
        total = max((len(column) for column in columns), default=0)
        rows = tuple(
            {name: (column[index] if index < len(column) else None) for name, column in zip(fields, columns)}
            for index in range(total)
        )
        return cls(fields=tuple(fields), rows=rows)

    @classmethod
    def from_rows(cls, fields: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> "SourceSnapshot":
        return cls(
            fields=tuple(fields),
            rows=tuple({name: row.get(name) for name in fields} for row in rows),
        )

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows)


class SheetSource(Protocol):
    """Anything that can produce a snapshot for a layout."""

    async def fetch(self, layout: SheetLayout) -> SourceSnapshot: ...


class StaticSource:
    """In-memory source for tests and fixtures.

    Sheets hold data rows (headers excluded) keyed by column letter, like
    the real spreadsheet, so layouts sharing a sheet read their own columns.
    """

    def __init__(self, sheets: Mapping[str, Sequence[Mapping[str, Any]]] | None = None) -> None:
        self._sheets: dict[str, list[Mapping[str, Any]]] = {
            name: list(rows) for name, rows in (sheets or {}).items()
        }
        self.fetches: list[str] = []

    def set(self, sheet: str, rows: Sequence[Mapping[str, Any]]) -> None:
        self._sheets[sheet] = list(rows)

    async def fetch(self, layout: SheetLayout) -> SourceSnapshot:
        self.fetches.append(layout.sheet)
        rows = [
            {name: row.get(column) for name, column in layout.columns.items()}
            for row in self._sheets.get(layout.sheet, [])
        ]
        return SourceSnapshot.from_rows(layout.fields, rows)


# =============================================================================
# Cell helpers
# =============================================================================


def cell_text(value: Any) -> str:
    """Cell as stripped text. Blank cells become "" and 12.0 becomes "12"."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def cell_number(value: Any) -> float | int | None:
    """Numeric cell value, or None for blanks and non-numeric text."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else number


def excel_serial_to_date(serial: Any) -> date | None:
    """Convert a spreadsheet serial day number to a date (time of day dropped)."""
    number = cell_number(serial)
    if number is None:
        return None
    return EXCEL_EPOCH + timedelta(days=int(number))


def drive_image_url(url: str | None) -> str | None:
    """Turn a Drive share link into a direct view URL; other values pass through.

    https://drive.google.com/file/d/<id>/view?usp=share_link
        -> https://drive.google.com/uc?export=view&id=<id>
    """
    if not url or not url.startswith(_DRIVE_FILE_PREFIX):
        return url
    file_id = url[len(_DRIVE_FILE_PREFIX):].split("/")[0]
    return f"https://drive.google.com/uc?export=view&id={file_id}"
