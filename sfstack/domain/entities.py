from datetime import UTC, datetime
from typing import ClassVar
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

USERS = "users"
SUPERUSERS = "superusers"

# Seeded by the first data migration; the bootstrap gate only recognises the
# empty system while this address is the sole superuser.
INITIAL_SUPERUSER_EMAIL = "__initial_superuser@example.com"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AccountRecord(BaseModel):
    collection: ClassVar[str]

    id: UUID = Field(default_factory=uuid4)
    email: str
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class User(AccountRecord):
    """Regular account, the only kind that can log in through the API."""

    collection: ClassVar[str] = USERS

    email_visibility: bool = False
    verified: bool = False


class Superuser(AccountRecord):
    collection: ClassVar[str] = SUPERUSERS


Record = User | Superuser

RECORD_TYPES: dict[str, type[AccountRecord]] = {
    USERS: User,
    SUPERUSERS: Superuser,
}
