"""Harvest model - months in which a variety is available per country."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.models.base import ID_LENGTH, Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from catalog.models.country import Country
    from catalog.models.fruit_variety import FruitVariety


class Harvest(Base, IdMixin, TimestampMixin):
    """Harvest season entry, unique per (variety, country, month)."""

    __tablename__ = "harvests"
    __table_args__ = (
        UniqueConstraint("variety_id", "country_id", "month", name="uq_harvests_variety_country_month"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_harvests_month"),
    )

    variety_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("fruit_varieties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    country_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("countries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    organic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    variety: Mapped["FruitVariety"] = relationship(
        "FruitVariety",
        lazy="selectin",
    )
    country: Mapped["Country"] = relationship(
        "Country",
        lazy="selectin",
    )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fruitVarietyId": self.variety_id,
            "countryId": self.country_id,
            "month": self.month,
            "organic": self.organic,
            "fruitVariety": self.variety.to_record() if self.variety else None,
            "country": self.country.to_record() if self.country else None,
        }

    def __repr__(self) -> str:
        return f"<Harvest(id={self.id}, variety_id='{self.variety_id}', month={self.month})>"
