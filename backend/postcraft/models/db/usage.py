"""UsageLog ORM model (``ai_usage_logs``).

Append-only billing ledger.  ``project_id`` and ``session_id`` are plain
integers without foreign keys: removing a session must never rewrite or
drop a ledger row.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from postcraft.models.choices import ACTION_TYPES
from postcraft.models.db.base import Base, JSONType, check_in, utcnow

__all__ = ["UsageLog"]


class UsageLog(Base):
    __tablename__ = "ai_usage_logs"
    __table_args__ = (
        CheckConstraint(
            check_in("action_type", ACTION_TYPES), name="ai_usage_logs_action_check"
        ),
        Index("idx_ai_usage_logs_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    project_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    session_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Invocation
    action_type: Mapped[str] = mapped_column(String(32), nullable=False)
    model_used: Mapped[str] = mapped_column(String(100), nullable=False)
    tokens_used: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    api_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 6), nullable=True)
    processing_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Request metadata (opaque to the ledger)
    request_payload: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    response_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    retry_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Outcome
    is_successful: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
