"""Initial schema: users, matrix_data, matrix_counters

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "matrix_data",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("matrix_id", sa.Integer(), nullable=False),
        sa.Column("column_name", sa.String(length=255), nullable=False),
        sa.Column("transformation", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_matrix_data_user_matrix",
        "matrix_data",
        ["user_id", "matrix_id", "id"],
    )

    # ─── Counter table for atomic id allocation ──────────
    # Seeded from existing data so the first counter allocation continues
    # after the highest id each user already owns.
    op.create_table(
        "matrix_counters",
        sa.Column(
            "user_id", sa.Integer(), sa.ForeignKey("users.id"), primary_key=True
        ),
        sa.Column("last_matrix_id", sa.Integer(), nullable=False),
    )
    op.execute(
        """
        INSERT INTO matrix_counters (user_id, last_matrix_id)
        SELECT user_id, MAX(matrix_id) FROM matrix_data GROUP BY user_id
        """
    )


def downgrade() -> None:
    op.drop_table("matrix_counters")
    op.drop_index("idx_matrix_data_user_matrix", table_name="matrix_data")
    op.drop_table("matrix_data")
    op.drop_table("users")
