"""add payment_sessions table

Revision ID: 20251201_000004
Revises: 20251124_000003
Create Date: 2025-12-01 00:00:04.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from schema_sql import drop_trigger, touch_updated_at_trigger


# revision identifiers, used by Alembic.
revision: str = "20251201_000004"
down_revision: Union[str, None] = "20251124_000003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "payment_sessions",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("user_id", postgresql.UUID(), nullable=False),
        sa.Column("gateway", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.Text(), server_default="USD", nullable=False),
        sa.Column("order_id", sa.Text(), nullable=False),
        sa.Column("creation_id", postgresql.UUID(), nullable=True),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        sa.Column("transaction_id", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "gateway IN ('stripe', 'telebirr', 'cbe', 'mpesa', 'amole')",
            name="payment_sessions_gateway_check",
        ),
        sa.CheckConstraint("type IN ('onetime', 'subscription')", name="payment_sessions_type_check"),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'cancelled')",
            name="payment_sessions_status_check",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["creation_id"], ["creations.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id"),
        if_not_exists=True,
    )

    op.create_index("idx_payment_sessions_user_id", "payment_sessions", ["user_id"], if_not_exists=True)
    op.create_index("idx_payment_sessions_order_id", "payment_sessions", ["order_id"], if_not_exists=True)
    op.create_index("idx_payment_sessions_status", "payment_sessions", ["status"], if_not_exists=True)
    op.create_index("idx_payment_sessions_gateway", "payment_sessions", ["gateway"], if_not_exists=True)
    op.create_index(
        "idx_payment_sessions_created_at",
        "payment_sessions",
        [sa.text("created_at DESC")],
        if_not_exists=True,
    )

    for statement in touch_updated_at_trigger("payment_sessions"):
        op.execute(statement)


def downgrade() -> None:
    op.execute(drop_trigger("update_payment_sessions_updated_at", "payment_sessions"))
    op.drop_index("idx_payment_sessions_created_at", table_name="payment_sessions", if_exists=True)
    op.drop_index("idx_payment_sessions_gateway", table_name="payment_sessions", if_exists=True)
    op.drop_index("idx_payment_sessions_status", table_name="payment_sessions", if_exists=True)
    op.drop_index("idx_payment_sessions_order_id", table_name="payment_sessions", if_exists=True)
    op.drop_index("idx_payment_sessions_user_id", table_name="payment_sessions", if_exists=True)
    op.drop_table("payment_sessions", if_exists=True)
