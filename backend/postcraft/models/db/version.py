"""ContentVersion ORM model (``ai_content_versions``).

Versions are append-only; only ``is_selected`` changes after insert.  The
partial unique index makes a second selected row per session impossible
at the storage level.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from postcraft.models.db.base import Base, JSONType, utcnow

__all__ = ["ContentVersion"]


class ContentVersion(Base):
    __tablename__ = "ai_content_versions"
    __table_args__ = (
        UniqueConstraint(
            "session_id", "version_number", name="uq_ai_content_versions_number"
        ),
        Index(
            "uq_ai_content_versions_selected",
            "session_id",
            unique=True,
            postgresql_where=text("is_selected"),
            sqlite_where=text("is_selected = 1"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("ai_post_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    generation_batch: Mapped[int] = mapped_column(
        Integer, default=1, server_default="1", nullable=False
    )

    # Payload
    content: Mapped[str] = mapped_column(Text, nullable=False)
    content_length: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    estimated_read_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    hashtags: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    mentions: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    call_to_action: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Generation parameters
    model_used: Mapped[str] = mapped_column(String(100), nullable=False)
    tokens_used: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    generation_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_selected: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
