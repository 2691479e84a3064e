"""FruitVariety model - variant of a fruit.

The full name ("Lime Persian") is derived per locale at read time and never
stored.
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.core.locale import full_name
from catalog.models.base import ID_LENGTH, Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from catalog.models.fruit import Fruit


class FruitVariety(Base, IdMixin, TimestampMixin):
    """Variety of a Fruit (Persian, Ataulfo, ...).

    Ids copied from the catalog sheet are short (<= 4 chars); longer ids
    were generated for varieties created inline by other syncs.
    """

    __tablename__ = "fruit_varieties"

    fruit_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("fruits.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name_es: Mapped[str] = mapped_column(String(100), nullable=False)
    name_en: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description_es: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    picture: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Relationships
    fruit: Mapped["Fruit"] = relationship(
        "Fruit",
        lazy="selectin",
    )

    def to_record(self) -> dict[str, Any]:
        fruit = self.fruit
        return {
            "id": self.id,
            "nameEs": self.name_es,
            "nameEn": self.name_en,
            "fullNameEs": full_name(fruit.name_es if fruit else None, self.name_es),
            "fullNameEn": full_name(fruit.name_en if fruit else None, self.name_en),
            "descriptionEs": self.description_es,
            "descriptionEn": self.description_en,
            "picture": self.picture,
            "fruitId": self.fruit_id,
            "fruit": fruit.to_record() if fruit else None,
        }

    def __repr__(self) -> str:
        return f"<FruitVariety(id={self.id}, name_en='{self.name_en}')>"
