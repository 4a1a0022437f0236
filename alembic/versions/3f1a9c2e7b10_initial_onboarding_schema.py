"""Initial onboarding schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-17 10:12:41.204117

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f1a9c2e7b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("plan", sa.String(20), nullable=False, server_default="smb"),
        sa.Column("industry", sa.Text(), nullable=True),
        sa.Column("website", sa.String(300), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("product_service", sa.Text(), nullable=True),
        sa.Column("pricing", sa.Text(), nullable=True),
        sa.Column("avg_transaction_value", sa.String(100), nullable=True),
        sa.Column("target_audience", sa.Text(), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("competitors", sa.JSON(), nullable=False),
        sa.Column("company_size", sa.String(100), nullable=True),
        sa.Column("sales_process", sa.Text(), nullable=True),
        sa.Column("sales_cycle", sa.String(100), nullable=True),
        sa.Column("channels_have", sa.Text(), nullable=True),
        sa.Column("channels_need", sa.Text(), nullable=True),
        sa.Column("current_campaigns", sa.Text(), nullable=True),
        sa.Column("monthly_budget_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("goals", sa.JSON(), nullable=False),
        sa.Column("pains", sa.Text(), nullable=True),
        sa.Column("additional_info", sa.Text(), nullable=True),
        sa.Column("drive_folder_id", sa.String(100), nullable=True),
        sa.Column("drive_folder_url", sa.Text(), nullable=True),
        sa.Column("profile_record_id", sa.String(100), nullable=True),
        sa.Column("conversation_log_id", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "client_contacts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("subject_key", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("channel", sa.String(16), nullable=False, server_default="whatsapp"),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_client_contacts_subject_key", "client_contacts", ["subject_key"], unique=True)

    op.create_table(
        "onboarding_sessions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("subject_key", sa.String(64), nullable=False),
        sa.Column("channel", sa.String(16), nullable=False, server_default="whatsapp"),
        sa.Column("language", sa.String(5), nullable=False, server_default="en"),
        sa.Column("plan", sa.String(20), nullable=False, server_default="smb"),
        sa.Column("current_step", sa.String(50), nullable=False, server_default="name"),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="in_progress"),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id"), nullable=True),
        sa.Column("invite_id", sa.String(100), nullable=True),
        sa.Column("invite_url", sa.Text(), nullable=True),
        sa.Column("drive_folder_url", sa.Text(), nullable=True),
        sa.Column("provisioning", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_onboarding_sessions_subject_key", "onboarding_sessions", ["subject_key"])
    op.create_index("ix_onboarding_sessions_status", "onboarding_sessions", ["status"])
    op.create_index(
        "ix_onboarding_sessions_subject_status", "onboarding_sessions", ["subject_key", "status"]
    )
    op.create_index(
        "uq_onboarding_sessions_active_subject",
        "onboarding_sessions",
        ["subject_key"],
        unique=True,
        postgresql_where=sa.text("status = 'in_progress'"),
        sqlite_where=sa.text("status = 'in_progress'"),
    )

    op.create_table(
        "conversation_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_key", sa.String(64), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("channel", sa.String(16), nullable=False, server_default="whatsapp"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_conversation_messages_subject_key", "conversation_messages", ["subject_key"])

    op.create_table(
        "outbound_dead_letters",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("recipient", sa.String(64), nullable=False),
        sa.Column("channel", sa.String(16), nullable=False, server_default="whatsapp"),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("failure_reason", sa.String(50), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_outbound_dead_letters_recipient", "outbound_dead_letters", ["recipient"])


def downgrade() -> None:
    op.drop_index("ix_outbound_dead_letters_recipient", table_name="outbound_dead_letters")
    op.drop_table("outbound_dead_letters")
    op.drop_index("ix_conversation_messages_subject_key", table_name="conversation_messages")
    op.drop_table("conversation_messages")
    op.drop_index("uq_onboarding_sessions_active_subject", table_name="onboarding_sessions")
    op.drop_index("ix_onboarding_sessions_subject_status", table_name="onboarding_sessions")
    op.drop_index("ix_onboarding_sessions_status", table_name="onboarding_sessions")
    op.drop_index("ix_onboarding_sessions_subject_key", table_name="onboarding_sessions")
    op.drop_table("onboarding_sessions")
    op.drop_index("ix_client_contacts_subject_key", table_name="client_contacts")
    op.drop_table("client_contacts")
    op.drop_table("clients")
