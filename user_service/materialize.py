from __future__ import annotations

from typing import AsyncIterator, List, Optional

from user_service.models import User
from user_service.store import Row


async def first_user(rows: AsyncIterator[Row]) -> Optional[User]:
    """The first row as a User, or None when the sequence is empty."""
    try:
        async for row in rows:
            return User.from_row(row)
        return None
    finally:
        await _close(rows)


async def collect_users(rows: AsyncIterator[Row]) -> List[User]:
    """Drain the whole sequence in the order the store delivers it."""
    try:
        return [User.from_row(row) async for row in rows]
    finally:
        await _close(rows)


async def _close(rows: AsyncIterator[Row]) -> None:
    # Stops further page fetches when we leave early.
    aclose = getattr(rows, "aclose", None)
    if aclose is not None:
        await aclose()


__all__ = ["first_user", "collect_users"]
