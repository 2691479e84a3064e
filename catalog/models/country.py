"""Country model - origin/destination of prices and harvests."""

from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from catalog.models.base import Base, IdMixin, TimestampMixin


class Country(Base, IdMixin, TimestampMixin):
    """Country with bilingual name. Ids are usually ISO codes ("MX")."""

    __tablename__ = "countries"

    name_es: Mapped[str] = mapped_column(String(100), nullable=False)
    name_en: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    dial_code: Mapped[str | None] = mapped_column(String(10), nullable=True)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nameEs": self.name_es,
            "nameEn": self.name_en,
            "dialCode": self.dial_code,
        }

    def __repr__(self) -> str:
        return f"<Country(id={self.id}, name_en='{self.name_en}')>"
