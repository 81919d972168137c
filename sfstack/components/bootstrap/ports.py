"""Bootstrap component port definitions.

Protocol interfaces for external dependencies.
"""

from __future__ import annotations

from typing import Protocol

from sfstack.core.ports.records import RecordSessionPort, RecordStorePort


class AuthAdapterPort(Protocol):
    """Authentication operations adapter."""

    def hash_password(self, password: str) -> str:
        """Hash a plaintext password for storage."""
        ...


class AuthContextPort(Protocol):
    """Identity attached to the current request."""

    def identity(self) -> str | None:
        """Validated identity of the caller, or None when anonymous."""
        ...


__all__ = [
    "AuthAdapterPort",
    "AuthContextPort",
    "RecordSessionPort",
    "RecordStorePort",
]
