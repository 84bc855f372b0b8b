"""status sync rows can be superseded by a newer status of the same complaint

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Only the newest pending row per complaint may still be delivered.
    op.execute(
        """
        UPDATE status_sync_outbox AS old
           SET state = 'superseded', next_retry_at = NULL
         WHERE old.state = 'pending'
           AND EXISTS (
                SELECT 1 FROM status_sync_outbox AS newer
                 WHERE newer.complaint_id = old.complaint_id
                   AND newer.id > old.id
           )
        """
    )
    op.execute("ALTER TABLE status_sync_outbox DROP CONSTRAINT IF EXISTS chk_status_sync_state")
    op.execute(
        """
        ALTER TABLE status_sync_outbox
          ADD CONSTRAINT chk_status_sync_state
          CHECK (state IN ('pending', 'sent', 'failed', 'superseded'))
        """
    )
    op.create_index("ix_status_sync_outbox_complaint_id", "status_sync_outbox", ["complaint_id"])


def downgrade() -> None:
    op.drop_index("ix_status_sync_outbox_complaint_id", table_name="status_sync_outbox")
    op.execute("UPDATE status_sync_outbox SET state = 'failed' WHERE state = 'superseded'")
    op.execute("ALTER TABLE status_sync_outbox DROP CONSTRAINT IF EXISTS chk_status_sync_state")
    op.execute(
        """
        ALTER TABLE status_sync_outbox
          ADD CONSTRAINT chk_status_sync_state
          CHECK (state IN ('pending', 'sent', 'failed'))
        """
    )
