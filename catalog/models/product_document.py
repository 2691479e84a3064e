"""ProductDocument model - spec sheets and MSDS attached to a product."""

from typing import Any

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from catalog.models.base import ID_LENGTH, Base, IdMixin, TimestampMixin


class ProductDocument(Base, IdMixin, TimestampMixin):
    """Bilingual name/URL pair owned by one Product.

    Recreated every time the owning product is resynchronized.
    """

    __tablename__ = "product_documents"

    product_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name_es: Mapped[str | None] = mapped_column(String(200), nullable=True)
    name_en: Mapped[str | None] = mapped_column(String(200), nullable=True)
    url_es: Mapped[str | None] = mapped_column(String(500), nullable=True)
    url_en: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nameEs": self.name_es,
            "nameEn": self.name_en,
            "urlEs": self.url_es,
            "urlEn": self.url_en,
            "productId": self.product_id,
        }

    def __repr__(self) -> str:
        return f"<ProductDocument(id={self.id}, product_id='{self.product_id}')>"
