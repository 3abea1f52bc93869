"""Scoped multi-statement transactions on top of Cassandra logged batches.

Cassandra has no interactive transactions, so a ``Transaction`` collects the
writes of one logical operation and sends them as LOGGED batches on commit.
Writes that already happened outside the batch (for example a uniqueness
guard taken with ``IF NOT EXISTS``) register a compensating statement with
``on_abort`` so an aborted operation leaves no trace.

Large transactions (an announcement to every participant) are split into
batches of at most ``max_batch_statements``, sent in staging order. Each
batch is atomic on its own. A statement staged with ``undo`` gets that undo
registered as a compensation once its batch is written, so a failure in a
later batch rolls back the earlier ones.

Usage:
    async with transaction(session) as tx:
        tx.add(insert_stmt, [...], undo=(delete_stmt, [...]))
        tx.add(update_stmt, [...])
    # committed here; aborted and re-raised if the block raised
"""

from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any

from cassandra.query import BatchStatement, BatchType

from src.core.logging import get_logger


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)

# Keeps batches under Cassandra's batch_size_fail_threshold for inbox rows
MAX_BATCH_STATEMENTS = 100

Statement = tuple[Any, Sequence[Any]]


class TransactionState(str, Enum):
    """Lifecycle of a transaction."""

    OPEN = "open"
    COMMITTED = "committed"
    ABORTED = "aborted"
    ENDED = "ended"


class TransactionError(Exception):
    """Raised when a transaction is used outside its lifecycle."""


class Transaction:
    """Collects statements and commits them as logged batches."""

    def __init__(
        self, session: "Session", max_batch_statements: int = MAX_BATCH_STATEMENTS
    ):
        self.session = session
        self.max_batch_statements = max_batch_statements
        self.state = TransactionState.OPEN
        self._statements: list[tuple[Any, Sequence[Any], Statement | None]] = []
        self._compensations: list[Statement] = []

    @property
    def size(self) -> int:
        return len(self._statements)

    def add(
        self,
        statement: Any,
        params: Sequence[Any] = (),
        undo: Statement | None = None,
    ) -> None:
        """Stage a statement, with the statement that reverts it if any."""
        if self.state != TransactionState.OPEN:
            msg = f"Cannot add to a transaction in state {self.state.value}"
            raise TransactionError(msg)
        self._statements.append((statement, params, undo))

    def on_abort(self, statement: Any, params: Sequence[Any] = ()) -> None:
        """Register a compensating statement run if the transaction aborts."""
        self._compensations.append((statement, params))

    def chunks(self) -> list[list[tuple[Any, Sequence[Any], Statement | None]]]:
        step = self.max_batch_statements
        return [
            self._statements[i : i + step]
            for i in range(0, len(self._statements), step)
        ]

    async def commit(self) -> None:
        """Send the staged statements as LOGGED batches, in staging order."""
        if self.state != TransactionState.OPEN:
            msg = f"Cannot commit a transaction in state {self.state.value}"
            raise TransactionError(msg)

        chunks = self.chunks()
        for chunk in chunks:
            batch = BatchStatement(batch_type=BatchType.LOGGED)
            for statement, params, _ in chunk:
                batch.add(statement, params)
            await self.session.aexecute(batch)
            self._compensations.extend(undo for _, _, undo in chunk if undo)

        self.state = TransactionState.COMMITTED
        logger.debug(
            "transaction_committed",
            statements=len(self._statements),
            batches=len(chunks),
        )

    async def abort(self) -> None:
        """Discard staged statements and run compensations in reverse order."""
        if self.state != TransactionState.OPEN:
            return

        self._statements.clear()
        for statement, params in reversed(self._compensations):
            try:
                await self.session.aexecute(statement, params)
            except Exception as e:
                logger.error("transaction_compensation_failed", error=str(e))

        self.state = TransactionState.ABORTED
        logger.warning("transaction_aborted", compensations=len(self._compensations))

    def end(self) -> None:
        """Release the transaction. Always called, whatever the outcome."""
        if self.state == TransactionState.OPEN:
            logger.warning("transaction_ended_without_commit")
        self._statements.clear()
        self._compensations.clear()
        self.state = TransactionState.ENDED


TransactionFactory = Callable[[], AbstractAsyncContextManager[Transaction]]


@asynccontextmanager
async def transaction(session: "Session") -> AsyncIterator[Transaction]:
    """Open a scoped transaction.

    Commits when the block exits normally. Any exception, including a failed
    commit, aborts the transaction and propagates. ``end`` runs on every path.
    """
    tx = Transaction(session)
    try:
        yield tx
        await tx.commit()
    except Exception:
        await tx.abort()
        raise
    finally:
        tx.end()


def transaction_factory(session: "Session") -> TransactionFactory:
    """Bind ``transaction`` to a session for injection into services."""

    def factory() -> AbstractAsyncContextManager[Transaction]:
        return transaction(session)

    return factory
