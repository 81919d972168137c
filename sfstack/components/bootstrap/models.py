"""Bootstrap component data models.

Frozen dataclasses for inputs and outputs, plus the error hierarchy raised
by the gate.
"""

from __future__ import annotations

from dataclasses import dataclass

MIN_PASSWORD_LENGTH = 10


@dataclass(frozen=True)
class FirstUserInput:
    """Form fields submitted to create the first account."""

    email: str
    password: str
    password_confirm: str


@dataclass(frozen=True)
class AuthStatus:
    """Answer to "who is calling, and may they still bootstrap?"."""

    authenticated: bool
    can_bootstrap: bool


# --- Error Types ---


class BootstrapError(Exception):
    """Base bootstrap error."""

    pass


class BootstrapValidationError(BootstrapError):
    """Submitted fields are missing or do not meet the password rules."""

    def __init__(self, code: str, field: str, message: str) -> None:
        self.code = code
        self.field = field
        self.message = message
        super().__init__(message)


class BootstrapConflictError(BootstrapError):
    """The system is no longer in its initial state; bootstrap is closed for good."""

    def __init__(self, reason: str, detail: str) -> None:
        self.reason = reason
        super().__init__(f"{reason}: {detail}")


class BootstrapInconsistencyError(BootstrapError):
    """The lone superuser is not the placeholder seeded by the initial migration."""

    def __init__(self, expected: str, found: str) -> None:
        self.expected = expected
        self.found = found
        super().__init__(
            f"Initial superuser email mismatch: expected '{expected}' but found '{found}'. "
            "Check the initial migration settings."
        )


class BootstrapStoreError(BootstrapError):
    """The record store failed while the gate was reading or writing."""

    def __init__(self, step: str, cause: Exception) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"{step} failed: {cause}")


class BootstrapBusyError(BootstrapError):
    """Timed out waiting for another bootstrap operation to finish."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Bootstrap is busy; gave up after {timeout:g}s")
