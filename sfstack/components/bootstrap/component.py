"""Bootstrap component implementation.

Guards the one-time transition from a fresh install (no users, only the
placeholder superuser seeded by the initial migration) to a system with one
real user and a matching superuser.

The gate holds a single lock shared by ``check_exists`` and
``create_first_user``; the lock covers the whole check-then-write sequence,
including the store transaction, so two concurrent submissions can never
both see the fresh state.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sfstack.core.ports.records import RecordSessionPort, RecordStoreError
from sfstack.domain.entities import (
    INITIAL_SUPERUSER_EMAIL,
    SUPERUSERS,
    USERS,
    AccountRecord,
    Superuser,
    User,
)

from .models import (
    MIN_PASSWORD_LENGTH,
    AuthStatus,
    BootstrapBusyError,
    BootstrapConflictError,
    BootstrapInconsistencyError,
    BootstrapStoreError,
    BootstrapValidationError,
    FirstUserInput,
)
from .ports import AuthAdapterPort, AuthContextPort, RecordStorePort

logger = logging.getLogger(__name__)


def validate_first_user_input(
    inp: FirstUserInput, reserved_email: str = INITIAL_SUPERUSER_EMAIL
) -> None:
    """Raise for the first field that fails; checks run in a fixed order."""
    if not inp.email:
        raise BootstrapValidationError(
            "MISSING_EMAIL",
            "email",
            "Missing 'email' parameter. Please provide a valid email address for the new user.",
        )
    if not inp.password:
        raise BootstrapValidationError(
            "MISSING_PASSWORD",
            "password",
            "Missing 'password' parameter. Please provide a secure password for the new user "
            f"(minimum length {MIN_PASSWORD_LENGTH} characters).",
        )
    if not inp.password_confirm:
        raise BootstrapValidationError(
            "MISSING_PASSWORD_CONFIRM",
            "passwordConfirm",
            "Missing 'passwordConfirm' parameter. Please confirm the password by providing "
            "the same value as 'password'.",
        )
    if inp.password != inp.password_confirm:
        raise BootstrapValidationError(
            "PASSWORD_MISMATCH",
            "passwordConfirm",
            "Password and confirmation do not match.",
        )
    if len(inp.password) < MIN_PASSWORD_LENGTH:
        raise BootstrapValidationError(
            "PASSWORD_TOO_SHORT",
            "password",
            f"Password length must be at least {MIN_PASSWORD_LENGTH} characters. "
            f"Provided length: {len(inp.password)}.",
        )
    if inp.email == reserved_email:
        raise BootstrapValidationError(
            "RESERVED_EMAIL",
            "email",
            f"The email address '{reserved_email}' is reserved for the initial superuser.",
        )


@dataclass(frozen=True)
class _Snapshot:
    user_count: int
    superusers: tuple[AccountRecord, ...]

    def is_fresh(self, placeholder_email: str) -> bool:
        return (
            self.user_count == 0
            and len(self.superusers) == 1
            and self.superusers[0].email == placeholder_email
        )


class BootstrapGate:
    def __init__(
        self,
        store: RecordStorePort,
        auth_adapter: AuthAdapterPort,
        placeholder_email: str = INITIAL_SUPERUSER_EMAIL,
        lock_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._auth = auth_adapter
        self._placeholder_email = placeholder_email
        self._lock_timeout = lock_timeout
        self._lock = threading.Lock()

    @contextmanager
    def _guard(self) -> Iterator[None]:
        timeout = -1 if self._lock_timeout is None else self._lock_timeout
        if not self._lock.acquire(timeout=timeout):
            raise BootstrapBusyError(timeout)
        try:
            yield
        finally:
            self._lock.release()

    def _read_state(self) -> _Snapshot:
        try:
            user_count = self._store.count(USERS)
        except RecordStoreError as e:
            raise BootstrapStoreError(f"count '{USERS}' records", e) from e
        if user_count > 0:
            return _Snapshot(user_count, ())

        try:
            superusers = self._store.find_all(SUPERUSERS)
        except RecordStoreError as e:
            raise BootstrapStoreError(f"fetch '{SUPERUSERS}' records", e) from e
        return _Snapshot(0, tuple(superusers))

    def check_exists(self) -> bool:
        """True once real accounts exist, False while the system is fresh.

        Any superuser layout other than the lone placeholder counts as
        "exists", so an unexpected configuration keeps bootstrap closed.
        """
        with self._guard():
            return not self._read_state().is_fresh(self._placeholder_email)

    def create_first_user(self, inp: FirstUserInput) -> bool:
        """Create the first user and matching superuser, replacing the placeholder.

        Raises:
            BootstrapValidationError: a field is missing or unacceptable. Checked only
                once the system is known to be fresh.
            BootstrapConflictError: users exist or the superuser count is not one.
            BootstrapInconsistencyError: the lone superuser is not the placeholder.
            BootstrapStoreError: the store failed; nothing was written.
            BootstrapBusyError: the lock wait timed out.
        """
        with self._guard():
            snapshot = self._read_state()
            if snapshot.user_count > 0:
                raise BootstrapConflictError(
                    "users already exist",
                    f"found {snapshot.user_count} existing users",
                )
            if len(snapshot.superusers) != 1:
                raise BootstrapConflictError(
                    "unexpected superuser count",
                    f"expected exactly 1 default superuser but found {len(snapshot.superusers)}",
                )

            placeholder = snapshot.superusers[0]
            if placeholder.email != self._placeholder_email:
                raise BootstrapInconsistencyError(self._placeholder_email, placeholder.email)

            validate_first_user_input(inp, reserved_email=self._placeholder_email)

            user = User(
                email=inp.email,
                password_hash=self._auth.hash_password(inp.password),
                email_visibility=False,
                verified=True,
            )
            superuser = Superuser(
                email=inp.email,
                password_hash=self._auth.hash_password(inp.password),
            )

            step = "begin transaction"

            def _replace_placeholder(tx: RecordSessionPort) -> None:
                nonlocal step
                step = "save user"
                tx.save(user)
                step = "save superuser"
                tx.save(superuser)
                step = "delete initial superuser"
                tx.delete(placeholder)
                step = "commit"

            try:
                self._store.run_in_transaction(_replace_placeholder)
            except RecordStoreError as e:
                logger.error("First user creation rolled back at step '%s': %s", step, e)
                raise BootstrapStoreError(
                    f"create user and superuser transactionally ({step})", e
                ) from e

        logger.info("First user %s created; placeholder superuser removed", inp.email)
        return True

    def is_authenticated(self, auth: AuthContextPort, registration_enabled: bool) -> AuthStatus:
        """Report the caller's auth state and whether the create form should be offered.

        Store failures while computing ``can_bootstrap`` propagate; a silent
        False would hide a transient fault behind "bootstrap unavailable".
        """
        authenticated = bool(auth.identity())
        if authenticated or not registration_enabled:
            return AuthStatus(authenticated=authenticated, can_bootstrap=False)
        return AuthStatus(authenticated=False, can_bootstrap=not self.check_exists())
