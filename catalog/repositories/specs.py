"""Locale resolution specs for every catalog entity."""

from catalog.core.locale import EntitySpec, LocaleField, NestedEntity

FRUIT_CATEGORY = EntitySpec(
    name="fruitCategory",
    collection="fruitCategories",
    fields={"name": LocaleField("name")},
)

PRESENTATION_CATEGORY = EntitySpec(
    name="presentationCategory",
    collection="presentationCategories",
    fields={"name": LocaleField("name")},
)

COUNTRY = EntitySpec(
    name="country",
    collection="countries",
    fields={"name": LocaleField("name")},
)

FRUIT = EntitySpec(
    name="fruit",
    collection="fruits",
    fields={
        "name": LocaleField("name"),
        "description": LocaleField("description"),
        "category": NestedEntity(FRUIT_CATEGORY),
    },
)

FRUIT_VARIETY = EntitySpec(
    name="fruitVariety",
    collection="fruitVarieties",
    fields={
        "name": LocaleField("name"),
        "fullName": LocaleField("fullName"),
        "description": LocaleField("description"),
        "fruit": NestedEntity(FRUIT),
    },
)

PRESENTATION = EntitySpec(
    name="presentation",
    collection="presentations",
    fields={
        "name": LocaleField("name"),
        "description": LocaleField("description"),
        "category": NestedEntity(PRESENTATION_CATEGORY),
    },
)

PRODUCT_DOCUMENT = EntitySpec(
    name="productDocument",
    collection="productDocuments",
    fields={
        "name": LocaleField("name"),
        "url": LocaleField("url"),
    },
)

PRODUCT = EntitySpec(
    name="product",
    collection="products",
    fields={
        "description": LocaleField("description"),
        "shelfLife": LocaleField("shelfLife"),
        "fruitVariety": NestedEntity(FRUIT_VARIETY),
        "presentation": NestedEntity(PRESENTATION),
        "documents": NestedEntity(PRODUCT_DOCUMENT),
    },
)

PRICE = EntitySpec(
    name="price",
    collection="prices",
    fields={
        "product": NestedEntity(PRODUCT),
        "country": NestedEntity(COUNTRY),
    },
)

HARVEST = EntitySpec(
    name="harvest",
    collection="harvests",
    fields={
        "fruitVariety": NestedEntity(FRUIT_VARIETY),
        "country": NestedEntity(COUNTRY),
    },
)
