"""Presentation repository."""

from catalog.models import Presentation
from catalog.repositories import specs
from catalog.repositories.base import NamedEntityRepository, Reference


class PresentationRepository(NamedEntityRepository[Presentation]):
    model = Presentation
    spec = specs.PRESENTATION
    columns = {
        "nameEs": "name_es",
        "nameEn": "name_en",
        "descriptionEs": "description_es",
        "descriptionEn": "description_en",
        "picture": "picture",
    }
    references = (Reference("category", "category_id", "presentation_categories"),)
    required = ("nameEs", "nameEn")
    filters = frozenset({"query", "id", "category"})
    sortable = {"id": "id", "name": "name_{locale}", "description": "description_{locale}"}
    dependents = (specs.PRODUCT, specs.PRODUCT_DOCUMENT, specs.PRICE)
