"""user profile columns and audit lookup indexes

Revision ID: 20261019_user_profile
Revises: 20261019_initial
Create Date: 2026-10-19 15:30:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_user_profile"
down_revision = "20261019_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.add_column(sa.Column("firstname", sa.String(length=100), nullable=True))
        batch_op.add_column(sa.Column("lastname", sa.String(length=100), nullable=True))
        batch_op.add_column(sa.Column("contact", sa.String(length=10), nullable=True))
        batch_op.add_column(sa.Column("address", sa.String(length=255), nullable=True))
        batch_op.add_column(sa.Column("purpose", sa.Text(), nullable=True))

    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity", "entity_id"])
    op.create_index("ix_audit_logs_action_at", "audit_logs", ["action", "at"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_action_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")

    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_column("purpose")
        batch_op.drop_column("address")
        batch_op.drop_column("contact")
        batch_op.drop_column("lastname")
        batch_op.drop_column("firstname")
