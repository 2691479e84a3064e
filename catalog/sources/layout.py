"""Sheet layouts: where each entity's fields live in the spreadsheets."""

import re
from dataclasses import dataclass, field
from typing import Mapping

from catalog.config import Settings

_PLAIN_SHEET_NAME = re.compile(r"^[A-Za-z0-9_]+$")


@dataclass(frozen=True)
class SheetLayout:
    """Static mapping from semantic field to spreadsheet column.

    Attributes:
        spreadsheet_id: Google spreadsheet id
        sheet: Sheet (tab) name
        columns: Field name -> column letter, in fetch order
        first_row: First data row (1-based, headers excluded)
    """

    spreadsheet_id: str
    sheet: str
    columns: Mapping[str, str] = field(default_factory=dict)
    first_row: int = 2

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self.columns)

    @property
    def sheet_ref(self) -> str:
        if _PLAIN_SHEET_NAME.match(self.sheet):
            return self.sheet
        escaped = self.sheet.replace("'", "''")
        return f"'{escaped}'"

    def ranges(self) -> list[str]:
        """A1 ranges, one open-ended column per field ("Fruta!C2:C")."""
        return [f"{self.sheet_ref}!{col}{self.first_row}:{col}" for col in self.columns.values()]


HARVEST_MONTH_COLUMNS = "JKLMNOPQRSTU"


def month_field(month: int) -> str:
    return f"month_{month}"


def catalog_layouts(settings: Settings) -> dict[str, SheetLayout]:
    """Layouts for every synced entity, keyed by handler name."""
    catalog_id = settings.catalog_spreadsheet_id
    return {
        "fruit_categories": SheetLayout(
            catalog_id,
            "Datos",
            {"nameEs": "A", "nameEn": "B"},
        ),
        "presentation_categories": SheetLayout(
            catalog_id,
            "Datos",
            {"nameEs": "C", "nameEn": "D"},
        ),
        "fruits": SheetLayout(
            catalog_id,
            "Fruta",
            {
                "id": "A",
                "nameEs": "M",
                "nameEn": "C",
                "picture": "H",
                "descriptionEs": "P",
                "descriptionEn": "F",
                "category": "I",
                "varietyEs": "N",
                "varietyEn": "D",
            },
        ),
        "fruit_varieties": SheetLayout(
            catalog_id,
            "Fruta",
            {
                "id": "A",
                "nameEs": "N",
                "nameEn": "D",
                "picture": "H",
                "descriptionEs": "P",
                "descriptionEn": "F",
                "fruit": "C",
            },
        ),
        "presentations": SheetLayout(
            catalog_id,
            "Presentacion",
            {
                "id": "A",
                "nameEs": "I",
                "nameEn": "B",
                "picture": "E",
                "descriptionEs": "J",
                "descriptionEn": "C",
                "category": "F",
            },
        ),
        "products": SheetLayout(
            catalog_id,
            "Producto",
            {
                "id": "A",
                "fruitVarietyEn": "D",
                "fruitVarietyEs": "T",
                "fruit": "C",
                "presentation": "E",
                "descriptionEs": "Y",
                "descriptionEn": "I",
                "picture": "K",
                "shelfLifeEs": "X",
                "shelfLifeEn": "H",
                "specUrlEn": "M",
                "specUrlEs": "AC",
                "specNameEs": "AB",
                "specNameEn": "L",
                "mdsUrlEn": "O",
                "mdsUrlEs": "AE",
                "mdsNameEs": "AD",
                "mdsNameEn": "N",
            },
            first_row=3,
        ),
        "prices": SheetLayout(
            settings.prices_spreadsheet_id,
            "Available",
            {
                "fruit": "I",
                "presentation": "J",
                "organic": "L",
                "drums": "M",
                "volume": "N",
                "date": "H",
                "country": "Q",
                "price": "P",
            },
        ),
        "harvests": SheetLayout(
            settings.harvest_spreadsheet_id,
            "Fruit Summary",
            {
                "country": "B",
                "fruit": "F",
                "variety": "G",
                "organic": "I",
                **{month_field(i + 1): col for i, col in enumerate(HARVEST_MONTH_COLUMNS)},
            },
            first_row=3,
        ),
    }
