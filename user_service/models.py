from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple
from uuid import UUID

from pydantic import BaseModel, ValidationError

from user_service.errors import StoreFault

# Canonical column order for partial updates.
MUTABLE_FIELDS = ("name", "email")


class User(BaseModel):
    id: UUID
    name: str
    email: str

    model_config = {"frozen": True}

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "User":
        """Decode an ``(id, name, email)`` row, raising StoreFault on a malformed one."""
        try:
            id_, name, email = row
            return cls(id=id_, name=name, email=email)
        except (TypeError, ValueError, ValidationError) as exc:
            raise StoreFault("decode row", str(exc)) from exc


class NewUser(BaseModel):
    name: str
    email: str


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None

    def present_fields(self) -> List[Tuple[str, str]]:
        pairs = []
        for field in MUTABLE_FIELDS:
            value = getattr(self, field)
            if value is not None:
                pairs.append((field, value))
        return pairs
