"""
Record store interfaces.

Protocol-based interfaces for the account collections (``users`` and
``superusers``). Implementations: SQLite.

Invariants:
- Emails are unique within a collection.
- ``run_in_transaction`` is all-or-nothing: if the callback raises, none of
  its writes are visible afterwards.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, TypeVar
from uuid import UUID

from sfstack.domain.entities import AccountRecord

T = TypeVar("T")


class RecordSessionPort(Protocol):
    """Record operations, either standalone or bound to an open transaction."""

    def count(self, collection: str) -> int:
        """Number of records in a collection."""
        ...

    def find_all(self, collection: str) -> list[AccountRecord]:
        """All records of a collection, oldest first."""
        ...

    def find_by_email(self, collection: str, email: str) -> AccountRecord | None:
        """Record with the given email, or None."""
        ...

    def get_by_id(self, collection: str, record_id: UUID) -> AccountRecord | None:
        """Record with the given id, or None."""
        ...

    def save(self, record: AccountRecord) -> AccountRecord:
        """Insert or update a record (upsert by id)."""
        ...

    def delete(self, record: AccountRecord) -> None:
        """Delete a record by id; RecordNotFoundError if it is already gone."""
        ...


class RecordStorePort(RecordSessionPort, Protocol):
    def run_in_transaction(self, fn: Callable[[RecordSessionPort], T]) -> T:
        """Run ``fn`` inside one transaction; commit on return, roll back on error."""
        ...


class RecordStoreError(Exception):
    """Base class for record store failures."""


class UnknownCollectionError(RecordStoreError):
    """Raised when a collection name has no backing table."""

    def __init__(self, collection: str) -> None:
        self.collection = collection
        super().__init__(f"Unknown collection: {collection}")


class RecordNotFoundError(RecordStoreError):
    """Raised when deleting a record that is no longer there."""

    def __init__(self, collection: str, record_id: UUID) -> None:
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"No {collection} record with id {record_id}")
