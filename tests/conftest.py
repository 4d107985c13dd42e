"""
Fixtures for the user service tests.

``FakeSession`` stands in for a cassandra ``Session``: it keeps rows in a dict
and understands exactly the CQL the query builder emits. Its futures mimic the
driver's ``ResponseFuture`` paging contract (``add_callbacks``,
``has_more_pages``, ``start_fetching_next_page``).
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from user_service.app import create_app
from user_service.queries import QueryBuilder
from user_service.state import AppState
from user_service.store import Store

KEYSPACE = "test_ks"

_UPDATE = re.compile(r"^UPDATE \S+ SET (?P<set>.+) WHERE id = %s IF EXISTS$")


class FakeResponseFuture:
    def __init__(
        self,
        pages: List[list],
        error: Optional[Exception] = None,
        fail_on_page: Optional[int] = None,
        silent: bool = False,
    ) -> None:
        self._pages = pages or [None]
        self._error = error
        self._fail_on_page = fail_on_page
        self._silent = silent
        self._index = 0
        self._callback = None
        self._errback = None
        self.pages_fetched = 0

    def add_callbacks(self, callback, errback) -> None:
        self._callback = callback
        self._errback = errback
        self._deliver()

    def _deliver(self) -> None:
        if self._silent:
            return
        if self._error is not None or self._index == self._fail_on_page:
            self._errback(self._error or RuntimeError("connection reset while paging"))
            return
        self.pages_fetched += 1
        self._callback(self._pages[self._index])

    @property
    def has_more_pages(self) -> bool:
        return self._index + 1 < len(self._pages)

    def start_fetching_next_page(self) -> None:
        self._index += 1
        self._deliver()


class FakeSession:
    def __init__(self) -> None:
        self.rows: Dict[UUID, Tuple[Any, Any]] = {}
        self.executed: List[Tuple[str, tuple]] = []
        self.futures: List[FakeResponseFuture] = []
        self.error: Optional[Exception] = None
        self.submit_error: Optional[Exception] = None
        self.fail_on_page: Optional[int] = None
        self.silent = False
        # False: writes come back without an [applied] row.
        self.reports_applied = True

    def add(self, user_id: UUID, name: Any, email: Any) -> None:
        self.rows[user_id] = (name, email)

    def execute_async(self, query, parameters=None, timeout=None) -> FakeResponseFuture:
        text = query.query_string
        params = tuple(parameters or ())
        if self.submit_error is not None:
            raise self.submit_error
        self.executed.append((text, params))

        result: List[tuple] = []
        if self.error is None:
            result = self._run(text, params)
        if not self.reports_applied and text.startswith(("UPDATE", "DELETE")):
            result = []
        fetch_size = query.fetch_size or 5000
        pages = [result[i : i + fetch_size] for i in range(0, len(result), fetch_size)]
        future = FakeResponseFuture(
            pages, error=self.error, fail_on_page=self.fail_on_page, silent=self.silent
        )
        self.futures.append(future)
        return future

    def _run(self, text: str, params: tuple) -> List[tuple]:
        if text.startswith("SELECT"):
            if "WHERE id = %s" in text:
                (user_id,) = params
                if user_id not in self.rows:
                    return []
                return [(user_id,) + self.rows[user_id]]
            return [(user_id,) + values for user_id, values in self.rows.items()]
        if text.startswith("INSERT"):
            user_id, name, email = params
            self.rows[user_id] = (name, email)
            return []
        if text.startswith("DELETE"):
            (user_id,) = params
            return [(self.rows.pop(user_id, None) is not None,)]
        match = _UPDATE.match(text)
        if match:
            columns = [part.split(" = ")[0] for part in match.group("set").split(", ")]
            *values, user_id = params
            if user_id not in self.rows:
                return [(False,)]
            current = dict(zip(("name", "email"), self.rows[user_id]))
            current.update(zip(columns, values))
            self.rows[user_id] = (current["name"], current["email"])
            return [(True,)]
        raise ValueError(f"unexpected statement: {text}")


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def store(session: FakeSession) -> Store:
    return Store(session, timeout=0.2, fetch_size=2)


@pytest.fixture
def queries() -> QueryBuilder:
    return QueryBuilder(KEYSPACE)


@pytest.fixture
def client(store: Store, queries: QueryBuilder) -> TestClient:
    return TestClient(create_app(AppState(store=store, queries=queries)))
