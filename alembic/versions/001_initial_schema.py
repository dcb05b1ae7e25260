"""Initial schema - permission, execution, audit_event, reconciler_cursor, dead_letter.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# uint256-sized amounts
AMOUNT = sa.Numeric(78, 0)


def upgrade() -> None:
    op.create_table(
        "permission",
        sa.Column("id", sa.String(66), primary_key=True),
        sa.Column("owner", sa.String(255), nullable=False),
        sa.Column("target", sa.String(255), nullable=False),
        sa.Column("selector", sa.String(10), nullable=False),
        sa.Column("max_value", AMOUNT, nullable=False),
        sa.Column("max_token_amount", AMOUNT, nullable=False),
        sa.Column("token_asset", sa.String(255), nullable=True),
        sa.Column("expiry", sa.BigInteger(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("granted_at", sa.BigInteger(), nullable=False),
        sa.Column("granted_at_block", sa.BigInteger(), nullable=False),
        sa.Column("granted_tx", sa.String(66), nullable=False),
        sa.Column("revoked_at", sa.BigInteger(), nullable=True),
        sa.Column("revoked_at_block", sa.BigInteger(), nullable=True),
        sa.Column("revoked_tx", sa.String(66), nullable=True),
    )
    op.create_index("ix_permission_owner_active", "permission", ["owner", "active"])

    op.create_table(
        "execution",
        sa.Column("id", sa.String(66), primary_key=True),
        sa.Column("caller", sa.String(255), nullable=False),
        sa.Column("target", sa.String(255), nullable=False),
        sa.Column("selector", sa.String(10), nullable=False),
        sa.Column("value", AMOUNT, nullable=False),
        sa.Column(
            "permission_id",
            sa.String(66),
            sa.ForeignKey("permission.id"),
            nullable=False,
        ),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("transaction_hash", sa.String(66), nullable=False),
    )
    op.create_index("ix_execution_caller_timestamp", "execution", ["caller", "timestamp"])
    op.create_index("ix_execution_permission_id", "execution", ["permission_id"])

    # One table for every audit kind; id is "<transaction_hash>-<log_index>"
    op.create_table(
        "audit_event",
        sa.Column("id", sa.String(80), primary_key=True),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("permission_id", sa.String(66), nullable=False),
        sa.Column("principal", sa.String(255), nullable=False),
        sa.Column("transaction_hash", sa.String(66), nullable=False),
        sa.Column("log_index", sa.Integer(), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("details", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
    )
    op.create_index(
        "ix_audit_event_kind_order", "audit_event", ["kind", "block_number", "log_index"]
    )
    op.create_index("ix_audit_event_permission_id", "audit_event", ["permission_id"])

    op.create_table(
        "reconciler_cursor",
        sa.Column("stream", sa.String(100), primary_key=True),
        sa.Column("sequence", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "dead_letter",
        sa.Column("stream", sa.String(100), primary_key=True),
        sa.Column("sequence", sa.BigInteger(), primary_key=True),
        sa.Column("raw", sa.Text(), nullable=False),
        sa.Column("error", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("replacement", sa.Text(), nullable=True),
    )
    op.create_index("ix_dead_letter_status", "dead_letter", ["stream", "status"])


def downgrade() -> None:
    op.drop_table("dead_letter")
    op.drop_table("reconciler_cursor")
    op.drop_table("audit_event")
    op.drop_table("execution")
    op.drop_table("permission")
