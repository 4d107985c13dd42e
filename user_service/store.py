"""
Async access to the wide-column store through cassandra-driver.

The driver reports results on its own I/O threads via ``ResponseFuture``
callbacks; pages are handed to the event loop with ``call_soon_threadsafe``
so handlers can await them without blocking a worker. Result sets are paged
(``fetch_size`` rows per round trip) and the next page is requested only
after the consumer has drained the current one.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, List, Sequence, Tuple

from cassandra import DriverException
from cassandra.cluster import Cluster, NoHostAvailable, Session
from cassandra.query import SimpleStatement, tuple_factory
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from user_service.config import Settings
from user_service.errors import StoreFault
from user_service.logging import get_logger
from user_service.queries import Statement

log = get_logger(__name__)

Row = Sequence[Any]

# Raised synchronously by execute_async (binding, no live hosts, closed session).
_SUBMIT_ERRORS = (DriverException, NoHostAvailable, OSError, TypeError, ValueError)


class Store:
    """Shared by every request; cassandra sessions are safe for concurrent use."""

    def __init__(self, session: Session, timeout: float = 10.0, fetch_size: int = 500) -> None:
        self._session = session
        self.timeout = timeout
        self.fetch_size = fetch_size

    def _submit(self, statement: Statement, operation: str):
        query = SimpleStatement(statement.text, fetch_size=self.fetch_size)
        try:
            return self._session.execute_async(query, statement.params, timeout=self.timeout)
        except _SUBMIT_ERRORS as exc:
            raise StoreFault(operation, str(exc)) from exc

    async def _pages(self, statement: Statement, operation: str) -> AsyncIterator[List[Row]]:
        loop = asyncio.get_running_loop()
        inbox: asyncio.Queue = asyncio.Queue()

        def on_page(rows):
            loop.call_soon_threadsafe(inbox.put_nowait, (rows, None))

        def on_error(exc):
            loop.call_soon_threadsafe(inbox.put_nowait, (None, exc))

        future = self._submit(statement, operation)
        future.add_callbacks(callback=on_page, errback=on_error)
        while True:
            try:
                # Backstop for a callback that never arrives; the driver enforces the real timeout.
                rows, error = await asyncio.wait_for(inbox.get(), self.timeout + 1.0)
            except asyncio.TimeoutError as exc:
                raise StoreFault(operation, f"no response within {self.timeout}s") from exc
            if error is not None:
                raise StoreFault(operation, str(error)) from error
            yield list(rows or [])
            if not future.has_more_pages:
                return
            future.start_fetching_next_page()

    async def execute(self, statement: Statement, operation: str = "execute") -> List[Row]:
        """Run a statement and return the rows of its first page (empty for plain writes)."""
        pages = self._pages(statement, operation)
        try:
            return await pages.__anext__()
        finally:
            await pages.aclose()

    async def stream(self, statement: Statement, operation: str = "query") -> AsyncIterator[Row]:
        """Yield rows one at a time, fetching further pages lazily. Single pass."""
        pages = self._pages(statement, operation)
        try:
            async for page in pages:
                for row in page:
                    yield row
        finally:
            await pages.aclose()


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((NoHostAvailable, OSError)),
    reraise=True,
)
def connect(settings: Settings) -> Tuple[Cluster, Session]:
    """
    Open a cluster connection, retrying transient failures.

    Rows come back as plain tuples so decoding stays positional.
    """
    cluster = Cluster(contact_points=settings.contact_points, port=settings.store_port)
    try:
        session = cluster.connect()
    except BaseException:
        cluster.shutdown()
        raise
    session.row_factory = tuple_factory
    log.info(
        "Connected to store",
        extra={"contact_points": settings.contact_points, "port": settings.store_port},
    )
    return cluster, session


__all__ = ["Store", "connect"]
