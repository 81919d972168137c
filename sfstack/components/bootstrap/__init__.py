"""Bootstrap component for first-run account setup.

This component decides whether the initial admin registration is still
open and performs the one-time replacement of the placeholder superuser
with the first real user and its matching superuser.
"""

from .component import BootstrapGate, validate_first_user_input
from .models import (
    MIN_PASSWORD_LENGTH,
    AuthStatus,
    BootstrapBusyError,
    BootstrapConflictError,
    BootstrapError,
    BootstrapInconsistencyError,
    BootstrapStoreError,
    BootstrapValidationError,
    FirstUserInput,
)
from .ports import AuthAdapterPort, AuthContextPort, RecordStorePort

__all__ = [
    # Entry points
    "BootstrapGate",
    "validate_first_user_input",
    # Models
    "AuthStatus",
    "FirstUserInput",
    "MIN_PASSWORD_LENGTH",
    # Errors
    "BootstrapError",
    "BootstrapValidationError",
    "BootstrapConflictError",
    "BootstrapInconsistencyError",
    "BootstrapStoreError",
    "BootstrapBusyError",
    # Ports
    "AuthAdapterPort",
    "AuthContextPort",
    "RecordStorePort",
]
