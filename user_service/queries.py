from __future__ import annotations

from typing import Any, NamedTuple, Sequence, Tuple
from uuid import UUID

from user_service.errors import EmptyUpdate
from user_service.models import MUTABLE_FIELDS


class Statement(NamedTuple):
    text: str
    params: Tuple[Any, ...] = ()


class QueryBuilder:
    """
    Builds CQL for the users table.

    Every value travels as a ``%s`` bound parameter. Only the keyspace/table
    reference (validated configuration) and fixed column names are part of the text.
    """

    def __init__(self, keyspace: str, table: str = "users") -> None:
        self.table_ref = f"{keyspace}.{table}"

    def list_all(self) -> Statement:
        return Statement(f"SELECT id, name, email FROM {self.table_ref}")

    def insert(self, user_id: UUID, name: str, email: str) -> Statement:
        return Statement(
            f"INSERT INTO {self.table_ref} (id, name, email) VALUES (%s, %s, %s)",
            (user_id, name, email),
        )

    def get_by_id(self, user_id: UUID) -> Statement:
        return Statement(
            f"SELECT id, name, email FROM {self.table_ref} WHERE id = %s",
            (user_id,),
        )

    def delete_by_id(self, user_id: UUID) -> Statement:
        return Statement(
            f"DELETE FROM {self.table_ref} WHERE id = %s IF EXISTS",
            (user_id,),
        )

    def partial_update(self, user_id: UUID, fields: Sequence[Tuple[str, Any]]) -> Statement:
        """
        ``UPDATE ... SET`` for the given ``(column, value)`` pairs only.

        Raises EmptyUpdate when there is nothing to set; a bare ``SET`` is not valid CQL.
        """
        # Column names go into the text, so only known ones, in canonical order.
        values = dict(fields)
        unknown = set(values) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"unknown columns: {sorted(unknown)}")
        columns = [column for column in MUTABLE_FIELDS if column in values]
        if not columns:
            raise EmptyUpdate(f"nothing to update for {user_id}")

        assignments = ", ".join(f"{column} = %s" for column in columns)
        params = tuple(values[column] for column in columns) + (user_id,)
        return Statement(
            f"UPDATE {self.table_ref} SET {assignments} WHERE id = %s IF EXISTS",
            params,
        )


__all__ = ["Statement", "QueryBuilder"]
