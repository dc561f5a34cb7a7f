"""content pipeline tables

Creates projects, post sessions with their status history, content
versions, generated assets and the usage ledger.

Revision ID: 0001_content_pipeline
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "0001_content_pipeline"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CONTENT_TONES = (
    "professional",
    "casual",
    "thought-leader",
    "provocative",
    "educational",
    "inspirational",
    "conversational",
    "custom",
)
CONTENT_TYPES = (
    "text-post",
    "carousel",
    "video-script",
    "poll",
    "article",
    "story",
    "announcement",
)
SESSION_STATUSES = ("ideation", "generating", "reviewing", "selecting", "completed")
SESSION_STEPS = (
    "ideation",
    "generating",
    "asset_pending",
    "reviewing",
    "selecting",
    "completed",
)
ACTION_TYPES = (
    "content_generation",
    "content_regeneration",
    "image_generation",
    "content_refinement",
    "asset_creation",
)
ASSET_TYPES = ("image", "carousel", "infographic", "banner", "thumbnail", "logo", "chart")


def _in(column: str, values: tuple[str, ...]) -> str:
    return "{} IN ({})".format(column, ",".join(f"'{v}'" for v in values))


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # -- ai_projects ---------------------------------------------------------
    op.create_table(
        "ai_projects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "tone", sa.String(32), server_default="professional", nullable=False
        ),
        sa.Column(
            "content_types", JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False
        ),
        sa.Column("guidelines", sa.Text(), nullable=True),
        sa.Column("target_audience", sa.Text(), nullable=True),
        sa.Column(
            "key_topics", JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False
        ),
        sa.Column("brand_voice", sa.Text(), nullable=True),
        sa.Column(
            "content_pillars",
            JSONB(),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column(
            "default_model",
            sa.String(100),
            server_default="gpt-4o-mini",
            nullable=False,
        ),
        sa.Column("total_sessions", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_posts", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.CheckConstraint(_in("tone", CONTENT_TONES), name="ai_projects_tone_check"),
    )
    op.create_index("idx_ai_projects_user", "ai_projects", ["user_id", "created_at"])

    # -- ai_post_sessions ----------------------------------------------------
    op.create_table(
        "ai_post_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("ai_projects.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("post_idea", sa.Text(), nullable=False),
        sa.Column("additional_context", sa.Text(), nullable=True),
        sa.Column(
            "target_content_type",
            sa.String(32),
            server_default="text-post",
            nullable=False,
        ),
        sa.Column("selected_model", sa.String(100), nullable=False),
        sa.Column("custom_prompt", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), server_default="ideation", nullable=False),
        sa.Column(
            "current_step", sa.String(32), server_default="ideation", nullable=False
        ),
        sa.Column("total_versions", sa.Integer(), server_default="0", nullable=False),
        sa.Column("selected_version_id", sa.Integer(), nullable=True),
        sa.Column("needs_asset", sa.Boolean(), server_default="false", nullable=False),
        sa.Column(
            "asset_generated", sa.Boolean(), server_default="false", nullable=False
        ),
        sa.Column("final_content", sa.Text(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), server_default="false", nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            _in("target_content_type", CONTENT_TYPES),
            name="ai_post_sessions_content_type_check",
        ),
        sa.CheckConstraint(
            _in("status", SESSION_STATUSES), name="ai_post_sessions_status_check"
        ),
        sa.CheckConstraint(
            _in("current_step", SESSION_STEPS), name="ai_post_sessions_step_check"
        ),
    )
    op.create_index(
        "idx_ai_post_sessions_project", "ai_post_sessions", ["project_id", "created_at"]
    )
    op.create_index("idx_ai_post_sessions_user", "ai_post_sessions", ["user_id"])

    op.create_table(
        "ai_session_status_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "session_id",
            sa.Integer(),
            sa.ForeignKey("ai_post_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("old_status", sa.String(32), nullable=True),
        sa.Column("new_status", sa.String(32), nullable=False),
        sa.Column("old_step", sa.String(32), nullable=True),
        sa.Column("new_step", sa.String(32), nullable=False),
        sa.Column("changed_by", sa.String(255), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index(
        "ix_ai_session_status_history_session_id",
        "ai_session_status_history",
        ["session_id"],
    )

    # -- ai_content_versions -------------------------------------------------
    op.create_table(
        "ai_content_versions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "session_id",
            sa.Integer(),
            sa.ForeignKey("ai_post_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("generation_batch", sa.Integer(), server_default="1", nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("content_length", sa.Integer(), nullable=True),
        sa.Column("estimated_read_time", sa.Integer(), nullable=True),
        sa.Column(
            "hashtags", JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False
        ),
        sa.Column(
            "mentions", JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False
        ),
        sa.Column("call_to_action", sa.Text(), nullable=True),
        sa.Column("model_used", sa.String(100), nullable=False),
        sa.Column("tokens_used", sa.Integer(), nullable=True),
        sa.Column("generation_time", sa.Float(), nullable=True),
        sa.Column("prompt", sa.Text(), nullable=True),
        sa.Column("is_selected", sa.Boolean(), server_default="false", nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.UniqueConstraint(
            "session_id", "version_number", name="uq_ai_content_versions_number"
        ),
    )
    op.create_index(
        "ix_ai_content_versions_session_id", "ai_content_versions", ["session_id"]
    )
    # At most one selected version per session
    op.create_index(
        "uq_ai_content_versions_selected",
        "ai_content_versions",
        ["session_id"],
        unique=True,
        postgresql_where=sa.text("is_selected"),
    )

    # -- ai_generated_assets -------------------------------------------------
    op.create_table(
        "ai_generated_assets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "session_id",
            sa.Integer(),
            sa.ForeignKey("ai_post_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("asset_type", sa.String(32), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("model", sa.String(100), nullable=True),
        sa.Column("style", sa.String(100), nullable=True),
        sa.Column("dimensions", sa.String(32), nullable=True),
        sa.Column("generation_time", sa.Float(), nullable=True),
        sa.Column("generation_cost", sa.Numeric(10, 6), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint(
            _in("asset_type", ASSET_TYPES), name="ai_generated_assets_type_check"
        ),
    )
    op.create_index(
        "ix_ai_generated_assets_session_id", "ai_generated_assets", ["session_id"]
    )

    # -- ai_usage_logs (no foreign keys: ledger rows outlive sessions) ------
    op.create_table(
        "ai_usage_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=True),
        sa.Column("session_id", sa.Integer(), nullable=True),
        sa.Column("action_type", sa.String(32), nullable=False),
        sa.Column("model_used", sa.String(100), nullable=False),
        sa.Column("tokens_used", sa.Integer(), nullable=True),
        sa.Column("api_cost", sa.Numeric(10, 6), nullable=True),
        sa.Column("processing_time", sa.Float(), nullable=True),
        sa.Column("request_payload", JSONB(), nullable=True),
        sa.Column("response_size", sa.Integer(), nullable=True),
        sa.Column("retry_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("is_successful", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint(
            _in("action_type", ACTION_TYPES), name="ai_usage_logs_action_check"
        ),
    )
    op.create_index(
        "idx_ai_usage_logs_user_created", "ai_usage_logs", ["user_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("idx_ai_usage_logs_user_created", table_name="ai_usage_logs")
    op.drop_table("ai_usage_logs")
    op.drop_index("ix_ai_generated_assets_session_id", table_name="ai_generated_assets")
    op.drop_table("ai_generated_assets")
    op.drop_index("uq_ai_content_versions_selected", table_name="ai_content_versions")
    op.drop_index("ix_ai_content_versions_session_id", table_name="ai_content_versions")
    op.drop_table("ai_content_versions")
    op.drop_index(
        "ix_ai_session_status_history_session_id",
        table_name="ai_session_status_history",
    )
    op.drop_table("ai_session_status_history")
    op.drop_index("idx_ai_post_sessions_user", table_name="ai_post_sessions")
    op.drop_index("idx_ai_post_sessions_project", table_name="ai_post_sessions")
    op.drop_table("ai_post_sessions")
    op.drop_index("idx_ai_projects_user", table_name="ai_projects")
    op.drop_table("ai_projects")
