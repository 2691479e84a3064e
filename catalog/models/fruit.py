"""Fruit model - catalog item, level 2 of the fruit taxonomy."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.models.base import ID_LENGTH, Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from catalog.models.fruit_category import FruitCategory


class Fruit(Base, IdMixin, TimestampMixin):
    """Fruit (Lime, Mango, ...) belonging to one FruitCategory."""

    __tablename__ = "fruits"

    category_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("fruit_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name_es: Mapped[str] = mapped_column(String(100), nullable=False)
    name_en: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description_es: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    picture: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Relationships
    category: Mapped["FruitCategory"] = relationship(
        "FruitCategory",
        lazy="selectin",
    )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nameEs": self.name_es,
            "nameEn": self.name_en,
            "descriptionEs": self.description_es,
            "descriptionEn": self.description_en,
            "picture": self.picture,
            "categoryId": self.category_id,
            "category": self.category.to_record() if self.category else None,
        }

    def __repr__(self) -> str:
        return f"<Fruit(id={self.id}, name_en='{self.name_en}')>"
