from __future__ import annotations


class StoreFault(Exception):
    """A statement, page fetch or row decode against the store failed."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class EmptyUpdate(ValueError):
    """An update payload carried none of the mutable fields."""


__all__ = ["StoreFault", "EmptyUpdate"]
