"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations mirror what is declared here.

Column types stay dialect-neutral so the same models run on PostgreSQL in
production and SQLite in tests.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class User(Base):
    """An account. `id` is the identity embedded in access tokens."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class MatrixRow(Base):
    """One column/transformation pair of a user's matrix.

    Learn: A "matrix" has no table of its own — it is every row sharing
    (user_id, matrix_id). There is no unique constraint on
    (user_id, matrix_id, column_name); re-saving a column appends a row.
    The surrogate `id` records insertion order for reads.
    """

    __tablename__ = "matrix_data"
    __table_args__ = (
        Index("idx_matrix_data_user_matrix", "user_id", "matrix_id", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    matrix_id: Mapped[int] = mapped_column(Integer, nullable=False)
    column_name: Mapped[str] = mapped_column(String(255), nullable=False)
    transformation: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class MatrixCounter(Base):
    """Store-owned matrix id sequence, one row per user.

    Learn: The counter strategy increments this row with UPDATE ... RETURNING
    inside the same transaction that inserts the matrix rows. The row lock
    serializes concurrent saves from one user, so two saves can never be
    handed the same id.
    """

    __tablename__ = "matrix_counters"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), primary_key=True
    )
    last_matrix_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
