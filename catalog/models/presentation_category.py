"""PresentationCategory model - classification of presentations."""

from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from catalog.models.base import Base, IdMixin, TimestampMixin


class PresentationCategory(Base, IdMixin, TimestampMixin):
    """Presentation category (Frozen, Juice, Puree, ...)."""

    __tablename__ = "presentation_categories"

    name_es: Mapped[str] = mapped_column(String(100), nullable=False)
    name_en: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)

    def to_record(self) -> dict[str, Any]:
        return {"id": self.id, "nameEs": self.name_es, "nameEn": self.name_en}

    def __repr__(self) -> str:
        return f"<PresentationCategory(id={self.id}, name_en='{self.name_en}')>"
