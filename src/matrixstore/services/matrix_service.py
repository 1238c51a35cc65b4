"""Matrix service — matrix id allocation and the save/list/read operations.

Learn: Saving a matrix means choosing the id its rows are stored under.

- A client-supplied id is used as-is (scoped to the caller; no existence
  check). The re-save policy decides whether earlier rows under that id
  are kept ("append", the default) or replaced ("replace").
- Without an id, the allocation strategy picks one:

  * MaxPlusOneAllocation — reads the user's current maximum, then inserts
    under max + 1 as a second, separate operation. This is how the legacy
    API behaved. Two concurrent saves from the same user can read the same
    maximum and end up merged under one id. Kept for compatibility.
  * CounterAllocation (default) — one transaction that bumps the user's
    row in `matrix_counters` and inserts the rows. No duplicate ids.

Both give max + 1 on a quiet store: existing ids {1, 2, 4} → 5.
"""

from typing import Protocol, Sequence

import structlog

from matrixstore.config import settings
from matrixstore.errors import InvalidInput
from matrixstore.services.matrix_repository import (
    COUNTER_DIALECTS,
    MatrixEntry,
    MatrixRepository,
)

logger = structlog.get_logger()

RESAVE_POLICIES = ("append", "replace")


class AllocationStrategy(Protocol):
    name: str

    async def save_new(
        self, repo: MatrixRepository, user_id: int, rows: Sequence[MatrixEntry]
    ) -> int:
        """Allocate a fresh matrix id for `user_id`, store `rows`, return the id."""
        ...


class MaxPlusOneAllocation:
    """Lookup, then insert: two round trips, no atomicity between them."""

    name = "max_plus_one"

    async def save_new(
        self, repo: MatrixRepository, user_id: int, rows: Sequence[MatrixEntry]
    ) -> int:
        current_max = await repo.max_matrix_id(user_id)
        matrix_id = current_max + 1
        await repo.insert_rows(user_id, matrix_id, rows)
        return matrix_id


class CounterAllocation:
    """Store-owned counter; allocate and insert in one transaction."""

    name = "counter"

    async def save_new(
        self, repo: MatrixRepository, user_id: int, rows: Sequence[MatrixEntry]
    ) -> int:
        return await repo.allocate_and_insert(user_id, rows)


STRATEGIES: dict[str, type] = {
    MaxPlusOneAllocation.name: MaxPlusOneAllocation,
    CounterAllocation.name: CounterAllocation,
}


def get_strategy(name: str) -> AllocationStrategy:
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"Unknown matrix id strategy: {name}") from None


def ensure_strategy_supported(strategy_name: str, dialect_name: str) -> None:
    """Fail at startup when the store cannot run the configured strategy."""
    get_strategy(strategy_name)
    if strategy_name == CounterAllocation.name and dialect_name not in COUNTER_DIALECTS:
        supported = ", ".join(sorted(COUNTER_DIALECTS))
        raise ValueError(
            f"Matrix id strategy 'counter' needs one of: {supported}; "
            f"got {dialect_name}. Use MATRIXSTORE_MATRIX_ID_STRATEGY=max_plus_one."
        )


class MatrixService:
    """Business logic for saving, listing and reading matrices."""

    def __init__(
        self,
        repo: MatrixRepository,
        strategy: AllocationStrategy | None = None,
        resave_policy: str | None = None,
    ):
        self.repo = repo
        self.strategy = strategy or get_strategy(settings.matrix_id_strategy)
        self.resave_policy = resave_policy or settings.matrix_resave_policy
        if self.resave_policy not in RESAVE_POLICIES:
            raise ValueError(f"Unknown re-save policy: {self.resave_policy}")

    async def save_matrix(
        self,
        user_id: int,
        rows: Sequence[MatrixEntry],
        matrix_id: int | None = None,
    ) -> int:
        """Store `rows` for `user_id` and return the matrix id they landed under.

        Raises InvalidInput for an empty row list and StorageError if the
        store fails at any step (nothing is committed in that case).
        """
        if not isinstance(rows, (list, tuple)) or not rows:
            raise InvalidInput("matrixData must be a non-empty list")

        log = logger.bind(user_id=user_id, rows=len(rows))

        if matrix_id is not None:
            await self.repo.insert_rows(
                user_id,
                matrix_id,
                rows,
                replace=self.resave_policy == "replace",
            )
            log.info(
                "matrix.saved",
                matrix_id=matrix_id,
                client_supplied=True,
                policy=self.resave_policy,
            )
            return matrix_id

        matrix_id = await self.strategy.save_new(self.repo, user_id, rows)
        log.info(
            "matrix.saved",
            matrix_id=matrix_id,
            client_supplied=False,
            strategy=self.strategy.name,
        )
        return matrix_id

    async def list_matrix_ids(self, user_id: int) -> list[int]:
        return await self.repo.distinct_matrix_ids(user_id)

    async def get_matrix(self, user_id: int, matrix_id: int) -> list[MatrixEntry]:
        return await self.repo.rows_for(user_id, matrix_id)
