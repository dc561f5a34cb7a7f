"""PostSession and SessionStatusHistory ORM models.

``ai_post_sessions`` is the unit of work of the generation pipeline.  The
owning ``user_id`` is copied from the parent project at creation so child
lookups can check ownership without joining through ``ai_projects``.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from postcraft.models.choices import CONTENT_TYPES, SESSION_STATUSES, SESSION_STEPS
from postcraft.models.db.base import Base, TimestampMixin, check_in, utcnow

__all__ = ["PostSession", "SessionStatusHistory"]


class PostSession(TimestampMixin, Base):
    __tablename__ = "ai_post_sessions"
    __table_args__ = (
        CheckConstraint(
            check_in("target_content_type", CONTENT_TYPES),
            name="ai_post_sessions_content_type_check",
        ),
        CheckConstraint(
            check_in("status", SESSION_STATUSES), name="ai_post_sessions_status_check"
        ),
        CheckConstraint(
            check_in("current_step", SESSION_STEPS), name="ai_post_sessions_step_check"
        ),
        Index("idx_ai_post_sessions_project", "project_id", "created_at"),
        Index("idx_ai_post_sessions_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ai_projects.id", ondelete="RESTRICT"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # Input
    post_idea: Mapped[str] = mapped_column(Text, nullable=False)
    additional_context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    target_content_type: Mapped[str] = mapped_column(
        String(32), default="text-post", server_default="text-post", nullable=False
    )
    selected_model: Mapped[str] = mapped_column(String(100), nullable=False)
    custom_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Workflow
    status: Mapped[str] = mapped_column(
        String(32), default="ideation", server_default="ideation", nullable=False
    )
    current_step: Mapped[str] = mapped_column(
        String(32), default="ideation", server_default="ideation", nullable=False
    )
    total_versions: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    selected_version_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Assets
    needs_asset: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    asset_generated: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )

    # Outcome
    final_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_completed: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )


class SessionStatusHistory(Base):
    __tablename__ = "ai_session_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("ai_post_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    old_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    new_status: Mapped[str] = mapped_column(String(32), nullable=False)
    old_step: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    new_step: Mapped[str] = mapped_column(String(32), nullable=False)
    changed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
