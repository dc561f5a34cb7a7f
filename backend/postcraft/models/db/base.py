"""Re-export Base and provide common column helpers for ORM models."""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from postcraft.database import Base

__all__ = ["Base", "JSONType", "TimestampMixin", "utcnow", "check_in"]

# JSONB on PostgreSQL, plain JSON elsewhere (sqlite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_in(column: str, values: tuple[str, ...]) -> str:
    """Render a ``column IN (...)`` CHECK constraint body."""
    quoted = ",".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class TimestampMixin:
    """Mixin that adds ``created_at`` and ``updated_at`` columns.

    Values are stamped client-side so ordering by ``created_at`` is stable
    within a transaction; the server default covers raw inserts.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )
