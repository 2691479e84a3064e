"""Presentation model - how a fruit is sold (frozen diced, juice, ...)."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.models.base import ID_LENGTH, Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from catalog.models.presentation_category import PresentationCategory


class Presentation(Base, IdMixin, TimestampMixin):
    """Presentation belonging to one PresentationCategory."""

    __tablename__ = "presentations"

    category_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("presentation_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name_es: Mapped[str] = mapped_column(String(100), nullable=False)
    name_en: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description_es: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    picture: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Relationships
    category: Mapped["PresentationCategory"] = relationship(
        "PresentationCategory",
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
        return f"<Presentation(id={self.id}, name_en='{self.name_en}')>"
