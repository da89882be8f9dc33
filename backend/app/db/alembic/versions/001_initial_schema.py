"""initial schema: key-value snapshot table

Revision ID: 001
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create kv_snapshot table holding the trip list and free-trial flag."""
    op.create_table(
        "kv_snapshot",
        sa.Column("key", sa.Text, primary_key=True, nullable=False),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    )


def downgrade() -> None:
    """Remove kv_snapshot table."""
    op.drop_table("kv_snapshot")
