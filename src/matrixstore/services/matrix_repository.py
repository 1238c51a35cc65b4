"""Matrix repository — persistence for matrix rows and id counters.

Learn: One repository per request, bound to that request's session.
Every write method is one transaction: it commits on success and rolls
back on failure, so a half-written batch is never visible to readers.
Store failures come out as StorageError (see db/transactions.py).
"""

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from matrixstore.db.models import MatrixCounter, MatrixRow
from matrixstore.db.transactions import storage_errors


@dataclass(frozen=True)
class MatrixEntry:
    """One column/transformation pair, independent of storage."""

    column_name: str
    transformation: str


_UPSERT_BY_DIALECT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

# Dialects the counter strategy can run on
COUNTER_DIALECTS = frozenset(_UPSERT_BY_DIALECT)


class MatrixRepository:
    """Reads and writes `matrix_data` and `matrix_counters` for one session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Reads ──────────────────────────────────────────

    async def max_matrix_id(self, user_id: int) -> int:
        """Highest matrix id the user owns, or 0 if none."""
        async with storage_errors(self.db, "matrix.max_id"):
            return await self._max_matrix_id(user_id)

    async def distinct_matrix_ids(self, user_id: int) -> list[int]:
        async with storage_errors(self.db, "matrix.list_ids"):
            result = await self.db.execute(
                select(MatrixRow.matrix_id)
                .where(MatrixRow.user_id == user_id)
                .distinct()
                .order_by(MatrixRow.matrix_id)
            )
            return list(result.scalars().all())

    async def rows_for(self, user_id: int, matrix_id: int) -> list[MatrixEntry]:
        """Rows of one matrix in insertion order; empty if it does not exist."""
        async with storage_errors(self.db, "matrix.read"):
            result = await self.db.execute(
                select(MatrixRow.column_name, MatrixRow.transformation)
                .where(
                    MatrixRow.user_id == user_id,
                    MatrixRow.matrix_id == matrix_id,
                )
                .order_by(MatrixRow.id)
            )
            return [MatrixEntry(name, transformation) for name, transformation in result]

    # ─── Writes ─────────────────────────────────────────

    async def insert_rows(
        self,
        user_id: int,
        matrix_id: int,
        rows: Sequence[MatrixEntry],
        replace: bool = False,
    ) -> None:
        """Store all rows under (user_id, matrix_id) in one transaction.

        With replace=True the matrix's existing rows are deleted first,
        inside the same transaction.
        """
        async with storage_errors(self.db, "matrix.insert"):
            if replace:
                await self.db.execute(
                    delete(MatrixRow).where(
                        MatrixRow.user_id == user_id,
                        MatrixRow.matrix_id == matrix_id,
                    )
                )
            self._add_rows(user_id, matrix_id, rows)
            await self._raise_counter_floor(user_id, matrix_id)
            await self.db.commit()

    async def allocate_and_insert(
        self, user_id: int, rows: Sequence[MatrixEntry]
    ) -> int:
        """Take the next id from the user's counter and store the rows under it.

        The counter increment and the inserts share one transaction. The
        UPDATE holds the counter row lock until commit, which serializes
        concurrent allocations for the same user.
        """
        upsert = self._counter_upsert()
        async with storage_errors(self.db, "matrix.allocate_and_insert"):
            matrix_id = await self._increment_counter(user_id)
            if matrix_id is None:
                await self._seed_counter(upsert, user_id)
                matrix_id = await self._increment_counter(user_id)
            self._add_rows(user_id, matrix_id, rows)
            await self.db.commit()
            return matrix_id

    # ─── Internals ──────────────────────────────────────

    def _add_rows(
        self, user_id: int, matrix_id: int, rows: Sequence[MatrixEntry]
    ) -> None:
        self.db.add_all(
            MatrixRow(
                user_id=user_id,
                matrix_id=matrix_id,
                column_name=row.column_name,
                transformation=row.transformation,
            )
            for row in rows
        )

    async def _max_matrix_id(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.max(MatrixRow.matrix_id), 0)).where(
                MatrixRow.user_id == user_id
            )
        )
        return int(result.scalar_one())

    async def _increment_counter(self, user_id: int) -> int | None:
        result = await self.db.execute(
            update(MatrixCounter)
            .where(MatrixCounter.user_id == user_id)
            .values(last_matrix_id=MatrixCounter.last_matrix_id + 1)
            .returning(MatrixCounter.last_matrix_id)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    def _counter_upsert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect not in COUNTER_DIALECTS:
            raise ValueError(
                f"Counter allocation is not supported on the {dialect} dialect"
            )
        return _UPSERT_BY_DIALECT[dialect]

    async def _seed_counter(self, upsert, user_id: int) -> None:
        """Create the counter row at the user's current maximum.

        ON CONFLICT DO NOTHING: if a concurrent request seeded it first,
        the following increment simply uses that row.
        """
        current = await self._max_matrix_id(user_id)
        await self.db.execute(
            upsert(MatrixCounter)
            .values(user_id=user_id, last_matrix_id=current)
            .on_conflict_do_nothing(index_elements=["user_id"])
        )

    async def _raise_counter_floor(self, user_id: int, matrix_id: int) -> None:
        """Keep an existing counter at or above an id stored directly."""
        await self.db.execute(
            update(MatrixCounter)
            .where(
                MatrixCounter.user_id == user_id,
                MatrixCounter.last_matrix_id < matrix_id,
            )
            .values(last_matrix_id=matrix_id)
            .execution_options(synchronize_session=False)
        )
