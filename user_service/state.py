from __future__ import annotations

from dataclasses import dataclass

from user_service.config import Settings
from user_service.queries import QueryBuilder
from user_service.store import Store


@dataclass(frozen=True)
class AppState:
    store: Store
    queries: QueryBuilder

    @classmethod
    def from_session(cls, session, settings: Settings) -> "AppState":
        return cls(
            store=Store(
                session,
                timeout=settings.store_request_timeout,
                fetch_size=settings.store_fetch_size,
            ),
            queries=QueryBuilder(settings.store_keyspace, settings.store_table),
        )


__all__ = ["AppState"]
