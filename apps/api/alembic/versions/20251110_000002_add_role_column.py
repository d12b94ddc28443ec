"""add role column to users

Revision ID: 20251110_000002
Revises: 20251103_000001
Create Date: 2025-11-10 00:00:02.000000

Databases bootstrapped from the early hosted schema have no role column.
Where the column already exists this revision does nothing.
"""

from typing import Sequence, Union

from alembic import op

from schema_sql import ADD_ROLE_COLUMN


# revision identifiers, used by Alembic.
revision: str = "20251110_000002"
down_revision: Union[str, None] = "20251103_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(ADD_ROLE_COLUMN)


def downgrade() -> None:
    # The base schema owns the column on fresh databases.
    pass
