"""Base model infrastructure for SQLAlchemy models."""

import secrets
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

ID_LENGTH = 10


def generate_id() -> str:
    """Random URL-safe identifier of ID_LENGTH characters."""
    return secrets.token_urlsafe(ID_LENGTH)[:ID_LENGTH]


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class IdMixin:
    """Short opaque string primary key, generated when absent."""

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=generate_id)


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
