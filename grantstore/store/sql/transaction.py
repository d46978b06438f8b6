"""
Atomic units of work over a SQLAlchemy engine.

A UnitOfWork is an async context manager: it begins a transaction on
entry, runs any number of statements, commits when the block completes
and rolls back when the block raises or was aborted. Nested units are
not supported.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction

from ...errors import ErrorSource, TransactionFailureError
from .errors import storage_errors


logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Scoped transaction covering several writes.

    Usage::

        async with UnitOfWork(engine) as unit:
            await unit.execute(first_statement)
            await unit.execute(second_statement)

    Every exit path releases the connection. If the rollback itself
    fails, a TransactionFailureError is raised whose ``cause`` is the
    error that triggered the rollback and whose ``rollback_error`` is
    the rollback failure.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._connection: Optional[AsyncConnection] = None
        self._transaction: Optional[AsyncTransaction] = None
        self._aborted = False

    @property
    def aborted(self) -> bool:
        return self._aborted

    async def __aenter__(self) -> "UnitOfWork":
        if self._connection is not None:
            raise RuntimeError("UnitOfWork is already active")
        with storage_errors("begin", ErrorSource.TRANSACTION):
            connection = await self._engine.connect()
            try:
                self._transaction = await connection.begin()
            except BaseException:
                await connection.close()
                raise
        self._connection = connection
        return self

    async def execute(self, statement, source: ErrorSource = ErrorSource.TRANSACTION,
                      record_type: str = "", key: str = ""):
        """Run one statement inside the unit."""
        if self._connection is None:
            raise RuntimeError("UnitOfWork is not active")
        if self._aborted:
            raise TransactionFailureError("unit of work was aborted")
        with storage_errors("execute", source, record_type, key):
            return await self._connection.execute(statement)

    def abort(self) -> None:
        """Mark the unit for rollback; nothing in it will be committed."""
        self._aborted = True

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc is None and not self._aborted:
                await self._commit()
            else:
                await self._rollback(exc)
        except BaseException:
            await self._release(quiet=True)
            raise
        await self._release(quiet=exc is not None)
        return False

    async def _release(self, quiet: bool) -> None:
        connection, self._connection, self._transaction = self._connection, None, None
        if not quiet:
            with storage_errors("close", ErrorSource.TRANSACTION):
                await connection.close()
            return
        try:
            await connection.close()
        except (SQLAlchemyError, OSError) as e:
            # the error already propagating out of the unit takes precedence
            logger.warning(f"Failed to release connection: {e}")

    async def _commit(self) -> None:
        try:
            await self._transaction.commit()
        except SQLAlchemyError as e:
            logger.error(f"Commit failed: {e}")
            raise TransactionFailureError("commit failed", cause=e) from e

    async def _rollback(self, exc: Optional[BaseException]) -> None:
        try:
            await self._transaction.rollback()
        except SQLAlchemyError as rollback_error:
            logger.error(f"Rollback failed after {exc!r}: {rollback_error}")
            raise TransactionFailureError(
                "rollback failed", cause=exc, rollback_error=rollback_error
            ) from (exc or rollback_error)
        if exc is not None:
            logger.debug(f"Rolled back unit of work after {type(exc).__name__}")
