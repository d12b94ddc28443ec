"""create base schema

Revision ID: 20251103_000001
Revises:
Create Date: 2025-11-03 00:00:01.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from schema_sql import (
    INCREMENT_DAILY_USAGE_FUNCTION,
    UPDATE_UPDATED_AT_FUNCTION,
    UUID_EXTENSION,
    drop_trigger,
    touch_updated_at_trigger,
)


# revision identifiers, used by Alembic.
revision: str = "20251103_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(UUID_EXTENSION)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("subscription_status", sa.Text(), server_default="free", nullable=False),
        sa.Column("role", sa.Text(), server_default="user", nullable=False),
        sa.Column("daily_usage_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_reset_date", sa.Date(), server_default=sa.text("CURRENT_DATE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("subscription_status IN ('free', 'pro')", name="users_subscription_status_check"),
        sa.CheckConstraint("role IN ('user', 'admin')", name="users_role_check"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        if_not_exists=True,
    )

    op.create_table(
        "creations",
        sa.Column("id", postgresql.UUID(), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("user_id", postgresql.UUID(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("html", sa.Text(), nullable=False),
        sa.Column("original_image", sa.Text(), nullable=True),
        sa.Column("mode", sa.Text(), server_default="web", nullable=False),
        sa.Column("purchased", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("mode IN ('web', 'mobile', 'social', 'logo')", name="creations_mode_check"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        if_not_exists=True,
    )

    op.create_index("idx_creations_user_id", "creations", ["user_id"], unique=False, if_not_exists=True)
    op.create_index(
        "idx_creations_created_at",
        "creations",
        [sa.text("created_at DESC")],
        unique=False,
        if_not_exists=True,
    )
    op.create_index("idx_users_email", "users", ["email"], unique=False, if_not_exists=True)

    op.execute(UPDATE_UPDATED_AT_FUNCTION)
    for table in ("users", "creations"):
        for statement in touch_updated_at_trigger(table):
            op.execute(statement)

    op.execute(INCREMENT_DAILY_USAGE_FUNCTION)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS increment_daily_usage(UUID)")
    op.execute(drop_trigger("update_creations_updated_at", "creations"))
    op.execute(drop_trigger("update_users_updated_at", "users"))
    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")
    op.drop_index("idx_users_email", table_name="users", if_exists=True)
    op.drop_index("idx_creations_created_at", table_name="creations", if_exists=True)
    op.drop_index("idx_creations_user_id", table_name="creations", if_exists=True)
    op.drop_table("creations", if_exists=True)
    op.drop_table("users", if_exists=True)
