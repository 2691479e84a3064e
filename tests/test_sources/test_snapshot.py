"""Tests for snapshots, layouts and cell helpers."""

from datetime import date

import pytest

from catalog.config import Settings
from catalog.sources import (
    SheetLayout,
    SourceSnapshot,
    StaticSource,
    catalog_layouts,
    cell_number,
    cell_text,
    drive_image_url,
    excel_serial_to_date,
)


class TestSourceSnapshot:
    def test_from_columns_aligns_by_index(self):
        snapshot = SourceSnapshot.from_columns(
            ["nameEs", "nameEn"],
            [["Cítricos", "Tropicales"], ["Citrus"]],
        )

        assert len(snapshot) == 2
        assert list(snapshot) == [
            {"nameEs": "Cítricos", "nameEn": "Citrus"},
            {"nameEs": "Tropicales", "nameEn": None},
        ]

    def test_from_columns_rejects_count_mismatch(self):
        with pytest.raises(ValueError):
            SourceSnapshot.from_columns(["a", "b"], [["x"]])

    def test_empty_columns(self):
        assert len(SourceSnapshot.from_columns(["a"], [[]])) == 0

    def test_from_rows_keeps_only_layout_fields(self):
        snapshot = SourceSnapshot.from_rows(["id", "nameEn"], [{"id": "1", "color": "green"}])

        assert snapshot.rows == ({"id": "1", "nameEn": None},)


class TestCellHelpers:
    """Tests for cell value normalization."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, ""),
            ("  Lime ", "Lime"),
            (12.0, "12"),
            (12.5, "12.5"),
            (7, "7"),
            (True, "TRUE"),
        ],
    )
    def test_cell_text(self, value, expected):
        assert cell_text(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, None),
            ("", None),
            ("n/a", None),
            (False, None),
            (3, 3),
            ("1,250", 1250),
            ("2.5", 2.5),
            (4.0, 4.0),
        ],
    )
    def test_cell_number(self, value, expected):
        assert cell_number(value) == expected

    def test_excel_serial_to_date(self):
        assert excel_serial_to_date(45292) == date(2024, 1, 1)
        assert excel_serial_to_date(45292.75) == date(2024, 1, 1)
        assert excel_serial_to_date(1) == date(1899, 12, 31)
        assert excel_serial_to_date("") is None

    def test_drive_image_url(self):
        link = "https://drive.google.com/file/d/1AbC_xyz/view?usp=share_link"

        assert drive_image_url(link) == "https://drive.google.com/uc?export=view&id=1AbC_xyz"
        assert drive_image_url("https://example.com/lime.png") == "https://example.com/lime.png"
        assert drive_image_url(None) is None
        assert drive_image_url("") == ""


class TestLayouts:
    """Tests for sheet layouts and range rendering."""

    def test_ranges_per_field(self):
        layout = SheetLayout("sheet-id", "Fruta", {"id": "A", "nameEn": "C"})

        assert layout.fields == ("id", "nameEn")
        assert layout.ranges() == ["Fruta!A2:A", "Fruta!C2:C"]

    def test_sheet_names_with_spaces_are_quoted(self):
        layout = SheetLayout("sheet-id", "Fruit Summary", {"country": "B"}, first_row=3)

        assert layout.ranges() == ["'Fruit Summary'!B3:B"]

    def test_quotes_in_sheet_names_are_doubled(self):
        assert SheetLayout("x", "Mike's", {}).sheet_ref == "'Mike''s'"

    def test_catalog_layouts_use_configured_spreadsheets(self):
        settings = Settings(
            catalog_spreadsheet_id="cat",
            prices_spreadsheet_id="pri",
            harvest_spreadsheet_id="har",
        )

        layouts = catalog_layouts(settings)

        assert layouts["fruits"].spreadsheet_id == "cat"
        assert layouts["prices"].spreadsheet_id == "pri"
        assert layouts["harvests"].spreadsheet_id == "har"
        assert layouts["products"].first_row == 3
        assert layouts["harvests"].fields[-1] == "month_12"
        assert layouts["harvests"].columns["month_1"] == "J"
        assert layouts["harvests"].columns["month_12"] == "U"


class TestStaticSource:
    @pytest.mark.asyncio
    async def test_layouts_read_their_own_columns(self):
        source = StaticSource({"Datos": [{"A": "Cítricos", "B": "Citrus", "C": "Congelado", "D": "Frozen"}]})
        fruit = SheetLayout("x", "Datos", {"nameEs": "A", "nameEn": "B"})
        presentation = SheetLayout("x", "Datos", {"nameEs": "C", "nameEn": "D"})

        assert list(await source.fetch(fruit)) == [{"nameEs": "Cítricos", "nameEn": "Citrus"}]
        assert list(await source.fetch(presentation)) == [{"nameEs": "Congelado", "nameEn": "Frozen"}]
        assert source.fetches == ["Datos", "Datos"]

    @pytest.mark.asyncio
    async def test_unknown_sheet_is_empty(self):
        source = StaticSource()
        source.set("Other", [{"A": "1"}])

        snapshot = await source.fetch(SheetLayout("x", "Fruta", {"id": "A"}))

        assert len(snapshot) == 0
