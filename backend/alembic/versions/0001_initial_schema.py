"""Initial schema: subscription tiers, clinics, users, onboarding state, sessions.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa

USER_ROLES = ("ADMINISTRATOR", "CLINIC_ADMIN", "THERAPIST")
SESSION_STATUSES = ("new", "scheduled", "started", "completed", "cancelled", "no_show")


def upgrade() -> None:
    op.create_table(
        "subscription_tiers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        sa.Column("monthly_price", sa.Integer(), nullable=False),
        sa.Column("yearly_price", sa.Integer(), nullable=False),
        sa.Column("therapist_limit", sa.Integer(), nullable=False),
        sa.Column("new_clients_per_day_limit", sa.Integer(), nullable=False),
        sa.Column("is_recommended", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_subscription_tiers_code", "subscription_tiers", ["code"])

    op.create_table(
        "clinics",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("website", sa.String(255)),
        sa.Column("description", sa.Text()),
        sa.Column("province", sa.String(100)),
        sa.Column("working_hours", sa.String(255)),
        sa.Column("timezone", sa.String(50), server_default="Asia/Jakarta"),
        sa.Column("language", sa.String(10), server_default="id"),
        sa.Column("status", sa.String(20), server_default="active"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column(
            "subscription_tier_id", sa.String(36), sa.ForeignKey("subscription_tiers.id")
        ),
        sa.Column("billing_cycle", sa.String(20)),
        sa.Column("subscription_expires", sa.DateTime(timezone=True)),
        sa.Column("payment_method", sa.String(30)),
        sa.Column("payment_reference", sa.String(100)),
        sa.Column("payment_confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(255)),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum(*USER_ROLES, name="userrole")),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column(
            "clinic_id", sa.String(36), sa.ForeignKey("clinics.id", ondelete="SET NULL")
        ),
        sa.Column("onboarding_completed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "onboarding_states",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("current_step", sa.String(20), server_default="clinic_info"),
        sa.Column("furthest_step", sa.String(20), server_default="clinic_info"),
        sa.Column("data", sa.JSON()),
        sa.Column("error", sa.String(500)),
        sa.Column("is_complete", sa.Boolean(), server_default=sa.false()),
        sa.Column("just_completed_subscription", sa.Boolean(), server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "therapy_sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("clinic_id", sa.String(36), nullable=False),
        sa.Column("therapy_id", sa.String(36), nullable=False),
        sa.Column("client_id", sa.String(36), nullable=False),
        sa.Column("therapist_id", sa.String(36), nullable=False),
        sa.Column("session_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("session_time", sa.String(5), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), server_default="60"),
        sa.Column("status", sa.Enum(*SESSION_STATUSES, name="sessionstatus")),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "client_id", "therapist_id", "session_number",
            name="uq_therapy_sessions_client_therapist_number",
        ),
    )
    for column in ("clinic_id", "therapy_id", "client_id", "therapist_id", "status"):
        op.create_index(f"ix_therapy_sessions_{column}", "therapy_sessions", [column])


def downgrade() -> None:
    op.drop_table("therapy_sessions")
    op.drop_table("onboarding_states")
    op.drop_table("users")
    op.drop_table("clinics")
    op.drop_table("subscription_tiers")
    sa.Enum(name="sessionstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
