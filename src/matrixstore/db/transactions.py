"""Translate backing-store failures into StorageError.

Learn: Driver errors, pool timeouts and dropped connections all surface
as SQLAlchemyError or OSError. Services wrap each unit of work in
`storage_errors()` so the session is rolled back and the caller only ever
sees StorageError (with the original exception attached as `cause`).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from matrixstore.errors import StorageError

logger = structlog.get_logger()

# OverflowError: a Python int the driver cannot bind as a column value
STORE_ERRORS = (SQLAlchemyError, OSError, OverflowError)


@asynccontextmanager
async def storage_errors(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    try:
        yield
    except STORE_ERRORS as e:
        logger.warning("storage.failed", operation=operation, error=repr(e))
        try:
            await db.rollback()
        except STORE_ERRORS as rollback_error:
            logger.warning(
                "storage.rollback_failed",
                operation=operation,
                error=repr(rollback_error),
            )
        raise StorageError(cause=e) from e
