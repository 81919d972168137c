import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

from sfstack.core.ports.records import (
    RecordNotFoundError,
    RecordStoreError,
    UnknownCollectionError,
)
from sfstack.domain.entities import RECORD_TYPES, SUPERUSERS, USERS, AccountRecord

T = TypeVar("T")

# Column order is the INSERT order; "id" must come first.
_COLUMNS: dict[str, tuple[str, ...]] = {
    USERS: (
        "id",
        "email",
        "password_hash",
        "email_visibility",
        "verified",
        "created_at",
        "updated_at",
    ),
    SUPERUSERS: ("id", "email", "password_hash", "created_at", "updated_at"),
}


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _to_sql(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def _columns(collection: str) -> tuple[str, ...]:
    try:
        return _COLUMNS[collection]
    except KeyError:
        raise UnknownCollectionError(collection) from None


class SQLiteRecordSession:
    """Record operations on one open connection.

    Does not commit; the owner of the connection decides when a write
    becomes visible.
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def _map_row(self, collection: str, row: dict[str, Any]) -> AccountRecord:
        return RECORD_TYPES[collection].model_validate(row)

    def count(self, collection: str) -> int:
        _columns(collection)
        try:
            row = self._conn.execute(f"SELECT COUNT(*) AS n FROM {collection}").fetchone()
        except sqlite3.Error as e:
            raise RecordStoreError(f"could not count {collection} records: {e}") from e
        return int(row["n"])

    def find_all(self, collection: str) -> list[AccountRecord]:
        _columns(collection)
        try:
            rows = self._conn.execute(
                f"SELECT * FROM {collection} ORDER BY created_at ASC, id ASC"
            ).fetchall()
        except sqlite3.Error as e:
            raise RecordStoreError(f"could not fetch {collection} records: {e}") from e
        return [self._map_row(collection, row) for row in rows]

    def find_by_email(self, collection: str, email: str) -> AccountRecord | None:
        _columns(collection)
        try:
            row = self._conn.execute(
                f"SELECT * FROM {collection} WHERE email = ?", (email,)
            ).fetchone()
        except sqlite3.Error as e:
            raise RecordStoreError(f"could not look up {collection} record: {e}") from e
        return self._map_row(collection, row) if row else None

    def get_by_id(self, collection: str, record_id: UUID) -> AccountRecord | None:
        _columns(collection)
        try:
            row = self._conn.execute(
                f"SELECT * FROM {collection} WHERE id = ?", (str(record_id),)
            ).fetchone()
        except sqlite3.Error as e:
            raise RecordStoreError(f"could not look up {collection} record: {e}") from e
        return self._map_row(collection, row) if row else None

    def save(self, record: AccountRecord) -> AccountRecord:
        collection = record.collection
        columns = _columns(collection)
        data = record.model_dump()
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(
            f"{col}=excluded.{col}" for col in columns if col not in ("id", "created_at")
        )
        try:
            self._conn.execute(
                f"""
                INSERT INTO {collection} ({", ".join(columns)})
                VALUES ({placeholders})
                ON CONFLICT(id) DO UPDATE SET {updates}
            """,
                tuple(_to_sql(data[col]) for col in columns),
            )
        except sqlite3.Error as e:
            raise RecordStoreError(f"could not save {collection} record: {e}") from e
        return record

    def delete(self, record: AccountRecord) -> None:
        collection = record.collection
        _columns(collection)
        try:
            cursor = self._conn.execute(
                f"DELETE FROM {collection} WHERE id = ?", (str(record.id),)
            )
        except sqlite3.Error as e:
            raise RecordStoreError(f"could not delete {collection} record: {e}") from e
        if cursor.rowcount == 0:
            raise RecordNotFoundError(collection, record.id)


class SQLiteRecordStore:
    def __init__(self, db_path: str, query_timeout_seconds: float = 30.0):
        self.db_path = db_path
        self.query_timeout_seconds = query_timeout_seconds

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.query_timeout_seconds)
        except sqlite3.Error as e:
            raise RecordStoreError(f"could not open database {self.db_path}: {e}") from e
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    @contextmanager
    def _session(self, write: bool = False) -> Iterator[SQLiteRecordSession]:
        conn = self._get_conn()
        try:
            yield SQLiteRecordSession(conn)
            if write:
                conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def count(self, collection: str) -> int:
        with self._session() as session:
            return session.count(collection)

    def find_all(self, collection: str) -> list[AccountRecord]:
        with self._session() as session:
            return session.find_all(collection)

    def find_by_email(self, collection: str, email: str) -> AccountRecord | None:
        with self._session() as session:
            return session.find_by_email(collection, email)

    def get_by_id(self, collection: str, record_id: UUID) -> AccountRecord | None:
        with self._session() as session:
            return session.get_by_id(collection, record_id)

    def save(self, record: AccountRecord) -> AccountRecord:
        with self._session(write=True) as session:
            return session.save(record)

    def delete(self, record: AccountRecord) -> None:
        with self._session(write=True) as session:
            session.delete(record)

    def run_in_transaction(self, fn: Callable[[SQLiteRecordSession], T]) -> T:
        """Run ``fn`` against a session inside ``BEGIN IMMEDIATE``.

        The write lock is taken up front so that no other connection can slip
        a write in between the reads and writes ``fn`` performs. Any exception
        from ``fn`` rolls the whole transaction back and is re-raised.
        """
        conn = self._get_conn()
        try:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise RecordStoreError(f"could not begin transaction: {e}") from e

            try:
                result = fn(SQLiteRecordSession(conn))
            except Exception:
                conn.rollback()
                raise

            try:
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise RecordStoreError(f"could not commit transaction: {e}") from e
            return result
        finally:
            conn.close()
