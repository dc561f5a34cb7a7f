"""Project ORM model.

Maps to ``ai_projects``: a user-owned container for content-generation
work.  Sessions reference projects with ``ON DELETE RESTRICT``; the
service layer refuses to delete a project that still has sessions.
"""

from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from postcraft.models.choices import CONTENT_TONES
from postcraft.models.db.base import Base, JSONType, TimestampMixin, check_in

__all__ = ["Project"]


class Project(TimestampMixin, Base):
    __tablename__ = "ai_projects"
    __table_args__ = (
        CheckConstraint(check_in("tone", CONTENT_TONES), name="ai_projects_tone_check"),
        Index("idx_ai_projects_user", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # Identity
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Content strategy
    tone: Mapped[str] = mapped_column(
        String(32), default="professional", server_default="professional", nullable=False
    )
    content_types: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    guidelines: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    target_audience: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    key_topics: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    brand_voice: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_pillars: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    # Settings
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )
    default_model: Mapped[str] = mapped_column(
        String(100), default="gpt-4o-mini", server_default="gpt-4o-mini", nullable=False
    )

    # Counters
    total_sessions: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    total_posts: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
