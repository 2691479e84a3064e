"""SQLAlchemy models for the fruit catalog.

Repositories are the only writers; every write goes through them so cache
invalidation and change events stay in step with the store.
"""

from catalog.models.base import Base, IdMixin, TimestampMixin, generate_id
from catalog.models.country import Country
from catalog.models.fruit import Fruit
from catalog.models.fruit_category import FruitCategory
from catalog.models.fruit_variety import FruitVariety
from catalog.models.harvest import Harvest
from catalog.models.presentation import Presentation
from catalog.models.presentation_category import PresentationCategory
from catalog.models.price import Price
from catalog.models.product import Product
from catalog.models.product_document import ProductDocument

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "generate_id",
    "Country",
    "Fruit",
    "FruitCategory",
    "FruitVariety",
    "Harvest",
    "Presentation",
    "PresentationCategory",
    "Price",
    "Product",
    "ProductDocument",
]
