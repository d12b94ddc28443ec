"""add plan and credits to users, credit_transactions and payments tables

Revision ID: 20251124_000003
Revises: 20251110_000002
Create Date: 2025-11-24 00:00:03.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from schema_sql import (
    ADD_CREDITS_COLUMNS,
    DROP_CREDITS_COLUMNS,
    backfill_statements,
    create_trigger,
    drop_trigger,
    initialize_free_credits_function,
    touch_updated_at_trigger,
)


# revision identifiers, used by Alembic.
revision: str = "20251124_000003"
down_revision: Union[str, None] = "20251110_000002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(ADD_CREDITS_COLUMNS)

    op.create_table(
        "credit_transactions",
        sa.Column("id", postgresql.UUID(), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("user_id", postgresql.UUID(), nullable=False),
        sa.Column("change", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "reason IN ('INITIAL_FREE', 'DOWNLOAD', 'ONE_OFF_PURCHASE', 'SUBSCRIPTION_MONTHLY')",
            name="credit_transactions_reason_check",
        ),
        # Checked at commit: the BEFORE INSERT trigger on users writes this row before its user exists.
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", deferrable=True, initially="DEFERRED"
        ),
        sa.PrimaryKeyConstraint("id"),
        if_not_exists=True,
    )

    op.create_table(
        "payments",
        sa.Column("id", postgresql.UUID(), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("user_id", postgresql.UUID(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("provider", sa.Text(), server_default="stripe", nullable=False),
        sa.Column("provider_session_id", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("type IN ('ONE_OFF', 'SUBSCRIPTION')", name="payments_type_check"),
        sa.CheckConstraint("provider IN ('stripe', 'paypal', 'telebirr', 'cbe')", name="payments_provider_check"),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'cancelled', 'refunded')",
            name="payments_status_check",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        if_not_exists=True,
    )

    op.create_index("idx_credit_transactions_user_id", "credit_transactions", ["user_id"], if_not_exists=True)
    op.create_index(
        "idx_credit_transactions_created_at",
        "credit_transactions",
        [sa.text("created_at DESC")],
        if_not_exists=True,
    )
    op.create_index("idx_payments_user_id", "payments", ["user_id"], if_not_exists=True)
    op.create_index("idx_payments_provider_session_id", "payments", ["provider_session_id"], if_not_exists=True)
    op.create_index("idx_payments_status", "payments", ["status"], if_not_exists=True)
    op.create_index("idx_users_plan", "users", ["plan"], if_not_exists=True)
    op.create_index("idx_users_credits", "users", ["credits"], if_not_exists=True)

    for statement in touch_updated_at_trigger("payments"):
        op.execute(statement)

    op.execute(initialize_free_credits_function())
    for statement in create_trigger("initialize_user_credits", "users", "BEFORE INSERT", "initialize_free_credits"):
        op.execute(statement)

    for statement in backfill_statements():
        op.execute(statement)


def downgrade() -> None:
    op.execute(drop_trigger("initialize_user_credits", "users"))
    op.execute("DROP FUNCTION IF EXISTS initialize_free_credits()")
    op.execute(drop_trigger("update_payments_updated_at", "payments"))
    op.drop_index("idx_users_credits", table_name="users", if_exists=True)
    op.drop_index("idx_users_plan", table_name="users", if_exists=True)
    op.drop_index("idx_payments_status", table_name="payments", if_exists=True)
    op.drop_index("idx_payments_provider_session_id", table_name="payments", if_exists=True)
    op.drop_index("idx_payments_user_id", table_name="payments", if_exists=True)
    op.drop_index("idx_credit_transactions_created_at", table_name="credit_transactions", if_exists=True)
    op.drop_index("idx_credit_transactions_user_id", table_name="credit_transactions", if_exists=True)
    op.drop_table("payments", if_exists=True)
    op.drop_table("credit_transactions", if_exists=True)
    op.execute(DROP_CREDITS_COLUMNS)
