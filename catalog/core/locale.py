"""Locale resolution for bilingual records.

A raw record stores each translatable field twice (nameEs, nameEn, ...).
resolve() projects it into a single-locale view by adding the plain field
(name, ...) next to the raw variants, recursing into embedded sub-records.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Union

from catalog.core.errors import UnsupportedLocaleError

DEFAULT_LOCALES: tuple[str, ...] = ("es", "en")


@dataclass(frozen=True)
class LocaleField:
    """Output populated from <base><Locale> on the record."""

    base: str


@dataclass(frozen=True)
class NestedEntity:
    """Output is an embedded record resolved with its own spec."""

    spec: "EntitySpec"


FieldSpec = Union[LocaleField, NestedEntity]


@dataclass(frozen=True)
class EntitySpec:
    """Resolution spec for one entity type.

    Attributes:
        name: Singular entity name, used for cache keys and events ("fruit")
        collection: Plural name, used for list/count cache keys ("fruits")
        fields: Output field name -> LocaleField or NestedEntity
    """

    name: str
    collection: str
    fields: Mapping[str, FieldSpec] = field(default_factory=dict)

    @property
    def event_name(self) -> str:
        """Entity name as used in event channels (fruitVariety -> FruitVariety)."""
        return self.name[:1].upper() + self.name[1:]

    def locale_fields(self) -> list[str]:
        return [name for name, spec in self.fields.items() if isinstance(spec, LocaleField)]


def locale_suffix(locale: str, supported: Iterable[str] = DEFAULT_LOCALES) -> str:
    """Suffix for a locale variant column ("es" -> "Es").

    Raises:
        UnsupportedLocaleError: If locale is not a supported two-letter code
    """
    if not isinstance(locale, str) or locale not in tuple(supported):
        raise UnsupportedLocaleError(f"Unsupported locale: {locale!r}", locale=locale)
    return locale[:1].upper() + locale[1:]


def resolve(
    record: Any,
    spec: EntitySpec,
    locale: str,
    supported: Iterable[str] = DEFAULT_LOCALES,
) -> Any:
    """Project a raw record (or list of records) into a locale view.

    Args:
        record: Raw record dict, a sequence of them, or None
        spec: Entity spec describing locale and nested fields
        locale: Two-letter locale code
        supported: Accepted locale codes

    Returns:
        A new dict (or list of dicts, same order) with resolved fields
        added. None is returned unchanged. The input is never mutated.
    """
    supported = tuple(supported)
    suffix = locale_suffix(locale, supported)
    return _resolve(record, spec, locale, suffix, supported)


def _resolve(
    record: Any,
    spec: EntitySpec,
    locale: str,
    suffix: str,
    supported: tuple[str, ...],
) -> Any:
    if record is None:
        return None
    if isinstance(record, (list, tuple)):
        return [_resolve(item, spec, locale, suffix, supported) for item in record]

    view = dict(record)
    for out_name, field_spec in spec.fields.items():
        if isinstance(field_spec, LocaleField):
            view[out_name] = record.get(f"{field_spec.base}{suffix}")
        elif isinstance(field_spec, NestedEntity):
            if out_name in record:
                view[out_name] = _resolve(record[out_name], field_spec.spec, locale, suffix, supported)
        else:
            raise TypeError(f"Unknown field spec for {spec.name}.{out_name}: {field_spec!r}")
    return view


def full_name(parent_name: str | None, variant_name: str | None) -> str:
    """Display name of a variant ("Lime" + "Persian" -> "Lime Persian").

    Collapses to a single name when both are equal.
    """
    parent_name = parent_name or ""
    variant_name = variant_name or ""
    if parent_name == variant_name or not parent_name:
        return variant_name
    if not variant_name:
        return parent_name
    return f"{parent_name} {variant_name}"
