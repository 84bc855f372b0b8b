"""crews, complaint types, assignment records, crew messages, status sync outbox

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "complaint_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "crews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("simultaneous_limit", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "assigned_complaint_ids",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("simultaneous_limit >= 1", name="chk_crew_limit_positive"),
    )

    op.create_table(
        "crew_complaint_types",
        sa.Column("crew_id", sa.Integer(), sa.ForeignKey("crews.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "complaint_type_id",
            sa.Integer(),
            sa.ForeignKey("complaint_types.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "assignment_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("complaint_id", sa.Integer(), nullable=False),
        sa.Column("crew_id", sa.Integer(), sa.ForeignKey("crews.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="ASIGNADO"),
        sa.Column("complaint_type", sa.String(255), nullable=True),
        sa.Column("complaint_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("priority", sa.String(50), nullable=True),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("neighborhood", sa.String(255), nullable=True),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("in_process_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        # Legacy rows may still say SOLUCIONADO until revision 002 runs.
        sa.CheckConstraint(
            "status IN ('ASIGNADO', 'EN_PROCESO', 'COMPLETADO', 'SOLUCIONADO')",
            name="chk_assignment_status",
        ),
    )
    op.create_index("ix_assignment_records_complaint_id", "assignment_records", ["complaint_id"])
    op.create_index("ix_assignment_records_crew_id", "assignment_records", ["crew_id"])
    op.create_index("ix_assignment_records_status", "assignment_records", ["status"])
    op.create_index("idx_assignment_records_crew_status", "assignment_records", ["crew_id", "status"])

    op.create_table(
        "crew_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("crew_id", sa.Integer(), sa.ForeignKey("crews.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("sender", sa.String(100), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_crew_messages_crew_id", "crew_messages", ["crew_id"])
    op.create_index("ix_crew_messages_created_at", "crew_messages", ["created_at"])

    op.create_table(
        "status_sync_outbox",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "assignment_record_id",
            sa.Integer(),
            sa.ForeignKey("assignment_records.id"),
            nullable=False,
        ),
        sa.Column("complaint_id", sa.Integer(), nullable=False),
        sa.Column("target_status", sa.String(20), nullable=False),
        sa.Column("crew_id", sa.Integer(), nullable=True),
        sa.Column("state", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("next_retry_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("idempotency_key", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("state IN ('pending', 'sent', 'failed')", name="chk_status_sync_state"),
        sa.UniqueConstraint("idempotency_key", name="uq_status_sync_idempotency_key"),
    )
    op.create_index("ix_status_sync_outbox_assignment_record_id", "status_sync_outbox", ["assignment_record_id"])
    op.create_index("ix_status_sync_outbox_state", "status_sync_outbox", ["state"])
    op.create_index("ix_status_sync_outbox_next_retry_at", "status_sync_outbox", ["next_retry_at"])
    op.create_index("ix_status_sync_outbox_created_at", "status_sync_outbox", ["created_at"])
    op.create_index(
        "idx_status_sync_pending_retry",
        "status_sync_outbox",
        ["state", "next_retry_at"],
        postgresql_where=sa.text("state = 'pending'"),
    )


def downgrade() -> None:
    op.drop_table("status_sync_outbox")
    op.drop_table("crew_messages")
    op.drop_table("assignment_records")
    op.drop_table("crew_complaint_types")
    op.drop_table("crews")
    op.drop_table("complaint_types")
