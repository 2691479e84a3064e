"""Tests for locale resolution."""

import copy

import pytest

from catalog.core.errors import UnsupportedLocaleError
from catalog.core.locale import EntitySpec, LocaleField, NestedEntity, full_name, locale_suffix, resolve

CATEGORY = EntitySpec("fruitCategory", "fruitCategories", {"name": LocaleField("name")})
FRUIT = EntitySpec(
    "fruit",
    "fruits",
    {
        "name": LocaleField("name"),
        "description": LocaleField("description"),
        "category": NestedEntity(CATEGORY),
    },
)


@pytest.fixture
def fruit_record() -> dict:
    return {
        "id": "f1",
        "nameEs": "Limón",
        "nameEn": "Lime",
        "descriptionEs": "Ácido",
        "descriptionEn": "Sour",
        "category": {"id": "c1", "nameEs": "Cítricos", "nameEn": "Citrus"},
    }


class TestLocaleSuffix:
    def test_capitalizes_first_letter(self):
        assert locale_suffix("es") == "Es"
        assert locale_suffix("en") == "En"

    def test_unknown_locale_is_an_error(self):
        with pytest.raises(UnsupportedLocaleError) as exc_info:
            locale_suffix("fr")
        assert exc_info.value.code == "LOCALE_UNSUPPORTED"

    def test_custom_supported_set(self):
        assert locale_suffix("pt", supported=("pt", "en")) == "Pt"


class TestResolve:
    """Tests for resolve()."""

    def test_locale_fields(self, fruit_record: dict):
        view = resolve(fruit_record, FRUIT, "es")

        assert view["name"] == "Limón"
        assert view["description"] == "Ácido"

    def test_nested_entity(self, fruit_record: dict):
        view = resolve(fruit_record, FRUIT, "en")

        assert view["category"]["name"] == "Citrus"

    def test_round_trip_keeps_variants(self, fruit_record: dict):
        es = resolve(fruit_record, FRUIT, "es")
        en = resolve(es, FRUIT, "en")

        assert en["name"] == "Lime"
        assert en["nameEs"] == "Limón"
        assert en["nameEn"] == "Lime"

    def test_input_not_mutated(self, fruit_record: dict):
        original = copy.deepcopy(fruit_record)

        resolve(fruit_record, FRUIT, "es")

        assert fruit_record == original

    def test_sequences_keep_order(self, fruit_record: dict):
        other = {**fruit_record, "id": "f2", "nameEn": "Mango", "nameEs": "Mango"}

        views = resolve([fruit_record, other], FRUIT, "en")

        assert [v["name"] for v in views] == ["Lime", "Mango"]

    def test_none_passes_through(self):
        assert resolve(None, FRUIT, "en") is None

    def test_absent_nested_record_left_out(self):
        view = resolve({"id": "f1", "nameEs": "Pera", "nameEn": "Pear"}, FRUIT, "en")

        assert "category" not in view
        assert view["description"] is None

    def test_nested_none(self, fruit_record: dict):
        view = resolve({**fruit_record, "category": None}, FRUIT, "en")

        assert view["category"] is None

    def test_unsupported_locale(self, fruit_record: dict):
        with pytest.raises(UnsupportedLocaleError):
            resolve(fruit_record, FRUIT, "de")


class TestFullName:
    def test_concatenates_with_single_space(self):
        assert full_name("Lime", "Persian") == "Lime Persian"

    def test_collapses_equal_names(self):
        assert full_name("Mango", "Mango") == "Mango"

    def test_missing_parts(self):
        assert full_name(None, "Persian") == "Persian"
        assert full_name("Lime", "") == "Lime"
