"""Price model - dated price of a product, optionally per country."""

from datetime import date as date_type
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import Boolean, Date, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.models.base import ID_LENGTH, Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from catalog.models.country import Country
    from catalog.models.product import Product


class Price(Base, IdMixin, TimestampMixin):
    """Price record, unique per (product, country, date).

    A null country means a global price.
    """

    __tablename__ = "prices"
    __table_args__ = (
        UniqueConstraint("product_id", "country_id", "date", name="uq_prices_product_country_date"),
    )

    product_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    country_id: Mapped[str | None] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("countries.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    drums: Mapped[int | None] = mapped_column(Integer, nullable=True)
    volume: Mapped[Decimal | None] = mapped_column(Numeric(15, 1), nullable=True)
    organic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    product: Mapped["Product"] = relationship(
        "Product",
        lazy="selectin",
    )
    country: Mapped[Optional["Country"]] = relationship(
        "Country",
        lazy="selectin",
    )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "productId": self.product_id,
            "countryId": self.country_id,
            "date": self.date.isoformat() if self.date else None,
            "price": str(self.price) if self.price is not None else None,
            "drums": self.drums,
            "volume": str(self.volume) if self.volume is not None else None,
            "organic": self.organic,
            "product": self.product.to_record() if self.product else None,
            "country": self.country.to_record() if self.country else None,
        }

    def __repr__(self) -> str:
        return f"<Price(id={self.id}, product_id='{self.product_id}', date={self.date})>"
