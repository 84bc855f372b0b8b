"""rewrite legacy SOLUCIONADO records to COMPLETADO and tighten the status check

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("UPDATE assignment_records SET status = 'COMPLETADO' WHERE status = 'SOLUCIONADO'")
    op.execute("ALTER TABLE assignment_records DROP CONSTRAINT IF EXISTS chk_assignment_status")
    op.execute(
        """
        ALTER TABLE assignment_records
          ADD CONSTRAINT chk_assignment_status
          CHECK (status IN ('ASIGNADO', 'EN_PROCESO', 'COMPLETADO'))
        """
    )


def downgrade() -> None:
    op.execute("ALTER TABLE assignment_records DROP CONSTRAINT IF EXISTS chk_assignment_status")
    op.execute(
        """
        ALTER TABLE assignment_records
          ADD CONSTRAINT chk_assignment_status
          CHECK (status IN ('ASIGNADO', 'EN_PROCESO', 'COMPLETADO', 'SOLUCIONADO'))
        """
    )
