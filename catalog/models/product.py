"""Product model - a fruit variety in a given presentation."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.models.base import ID_LENGTH, Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from catalog.models.fruit_variety import FruitVariety
    from catalog.models.presentation import Presentation
    from catalog.models.product_document import ProductDocument


class Product(Base, IdMixin, TimestampMixin):
    """Product - composite of one FruitVariety and one Presentation.

    At most one product exists per (variety, presentation) pair.
    """

    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("variety_id", "presentation_id", name="uq_products_variety_presentation"),
    )

    variety_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("fruit_varieties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    presentation_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("presentations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description_es: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    shelf_life_es: Mapped[str | None] = mapped_column(String(100), nullable=True)
    shelf_life_en: Mapped[str | None] = mapped_column(String(100), nullable=True)
    picture: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Relationships
    variety: Mapped["FruitVariety"] = relationship(
        "FruitVariety",
        lazy="selectin",
    )
    presentation: Mapped["Presentation"] = relationship(
        "Presentation",
        lazy="selectin",
    )
    documents: Mapped[list["ProductDocument"]] = relationship(
        "ProductDocument",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProductDocument.id",
    )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "descriptionEs": self.description_es,
            "descriptionEn": self.description_en,
            "shelfLifeEs": self.shelf_life_es,
            "shelfLifeEn": self.shelf_life_en,
            "picture": self.picture,
            "fruitVarietyId": self.variety_id,
            "presentationId": self.presentation_id,
            "fruitVariety": self.variety.to_record() if self.variety else None,
            "presentation": self.presentation.to_record() if self.presentation else None,
            "documents": [doc.to_record() for doc in self.documents],
        }

    def __repr__(self) -> str:
        return (
            f"<Product(id={self.id}, variety_id='{self.variety_id}', "
            f"presentation_id='{self.presentation_id}')>"
        )
