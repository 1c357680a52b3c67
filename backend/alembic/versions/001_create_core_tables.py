"""Create core tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

Creates the user tables this service reads (user_profiles, focus_areas,
admin_users, reflections), the prompt history it writes, and the
maintenance tables (windows, notification audit, maintenance mode).

Rollback: downgrade() drops every table created here.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_UUID = postgresql.UUID(as_uuid=True)
_TS = postgresql.TIMESTAMP(timezone=True)


def _id() -> sa.Column:
    return sa.Column("id", _UUID, server_default=sa.text("gen_random_uuid()"), nullable=False)


def _now(name: str) -> sa.Column:
    return sa.Column(name, _TS, server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False)


def upgrade() -> None:
    # ── Users ─────────────────────────────────────────────────────────────
    op.create_table(
        "user_profiles",
        sa.Column("user_id", _UUID, nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("preferred_name", sa.String(120), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("email_preferences", postgresql.JSONB(), nullable=True),
        sa.Column(
            "subscription_tier",
            sa.String(20),
            server_default=sa.text("'freemium'"),
            nullable=False,
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("focus_areas", postgresql.ARRAY(sa.Text()), nullable=True),
        _now("created_at"),
        sa.PrimaryKeyConstraint("user_id", name="pk_user_profiles"),
    )
    op.create_index("idx_user_profiles_active", "user_profiles", ["is_active"])

    op.create_table(
        "focus_areas",
        _id(),
        sa.Column("user_id", _UUID, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("priority", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_focus_areas"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["user_profiles.user_id"],
            name="fk_focus_areas_user_id_user_profiles",
            ondelete="CASCADE",
        ),
    )
    op.create_index("idx_focus_areas_user", "focus_areas", ["user_id"])

    op.create_table(
        "admin_users",
        _id(),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(30), server_default=sa.text("'admin'"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_admin_users"),
        sa.UniqueConstraint("email", name="uq_admin_users_email"),
    )

    # ── Reflections and prompts ───────────────────────────────────────────
    op.create_table(
        "reflections",
        _id(),
        sa.Column("user_id", _UUID, nullable=False),
        sa.Column("mood", sa.String(16), nullable=False),
        sa.Column("tags", postgresql.ARRAY(sa.Text()), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("reflection_text", sa.Text(), nullable=True),
        _now("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_reflections"),
    )
    op.create_index(
        "idx_reflections_user_created",
        "reflections",
        ["user_id", sa.text("created_at DESC")],
    )

    op.create_table(
        "prompts_history",
        _id(),
        sa.Column("user_id", _UUID, nullable=False),
        sa.Column("prompt_text", sa.Text(), nullable=False),
        sa.Column("ai_provider", sa.String(30), nullable=False),
        sa.Column("ai_model", sa.String(120), nullable=False),
        sa.Column("category", sa.String(30), nullable=True),
        sa.Column("focus_area_used", sa.String(100), nullable=True),
        sa.Column("personalization_context", postgresql.JSONB(), nullable=True),
        sa.Column("date_generated", sa.Date(), nullable=False),
        sa.Column("used", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _now("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_prompts_history"),
        sa.UniqueConstraint("user_id", "date_generated", name="uq_prompts_history_user_day"),
    )

    # ── Maintenance ───────────────────────────────────────────────────────
    op.create_table(
        "maintenance_windows",
        _id(),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("affected_services", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), server_default=sa.text("'scheduled'"), nullable=False),
        sa.Column("notification_sent", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("notification_sent_at", _TS, nullable=True),
        sa.Column(
            "completion_notification_sent",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("completion_notification_sent_at", _TS, nullable=True),
        sa.Column("created_by", sa.String(255), nullable=True),
        _now("created_at"),
        _now("updated_at"),
        sa.Column("completed_at", _TS, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_maintenance_windows"),
        sa.CheckConstraint(
            "status IN ('scheduled', 'in_progress', 'completed', 'cancelled')",
            name="ck_maintenance_windows_status",
        ),
        sa.CheckConstraint("end_time > start_time", name="ck_maintenance_windows_time_range"),
    )
    op.create_index(
        "idx_maintenance_windows_scheduled_date",
        "maintenance_windows",
        [sa.text("scheduled_date DESC")],
    )
    op.create_index("idx_maintenance_windows_status", "maintenance_windows", ["status"])

    op.create_table(
        "maintenance_notifications",
        _id(),
        sa.Column("maintenance_window_id", _UUID, nullable=False),
        sa.Column("notification_type", sa.String(20), nullable=False),
        sa.Column("recipient_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("sent_by", sa.String(255), nullable=True),
        _now("sent_at"),
        sa.Column(
            "batch_details",
            postgresql.JSONB(),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_maintenance_notifications"),
        sa.ForeignKeyConstraint(
            ["maintenance_window_id"],
            ["maintenance_windows.id"],
            name="fk_maintenance_notifications_maintenance_window_id_maintenance_windows",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "notification_type IN ('planned', 'completed')",
            name="ck_maintenance_notifications_type",
        ),
    )
    op.create_index(
        "idx_maintenance_notifications_window",
        "maintenance_notifications",
        ["maintenance_window_id"],
    )

    op.create_table(
        "maintenance_mode",
        _id(),
        sa.Column("is_enabled", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("enabled_by", sa.String(255), nullable=True),
        sa.Column("enabled_at", _TS, nullable=True),
        sa.Column("disabled_at", _TS, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _now("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_maintenance_mode"),
    )
    op.execute("INSERT INTO maintenance_mode (is_enabled) VALUES (false)")


def downgrade() -> None:
    op.drop_table("maintenance_mode")
    op.drop_index("idx_maintenance_notifications_window", table_name="maintenance_notifications")
    op.drop_table("maintenance_notifications")
    op.drop_index("idx_maintenance_windows_status", table_name="maintenance_windows")
    op.drop_index("idx_maintenance_windows_scheduled_date", table_name="maintenance_windows")
    op.drop_table("maintenance_windows")
    op.drop_table("prompts_history")
    op.drop_index("idx_reflections_user_created", table_name="reflections")
    op.drop_table("reflections")
    op.drop_table("admin_users")
    op.drop_index("idx_focus_areas_user", table_name="focus_areas")
    op.drop_table("focus_areas")
    op.drop_index("idx_user_profiles_active", table_name="user_profiles")
    op.drop_table("user_profiles")
