"""First-user bootstrap endpoints.

- GET  /api/user/exists            : whether real accounts exist yet
- POST /api/user/create            : create the first user + matching superuser
- GET  /api/user/is-authenticated  : caller auth state and whether the
                                     create-admin form should be offered

``exists`` and ``create`` answer 404 while initial admin registration is
disabled in the configuration.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field

from sfstack.api.deps import (
    RequestAuthContext,
    client_key,
    get_auth_context,
    get_bootstrap_gate,
    get_rate_limiter,
    get_settings,
    require_registration_enabled,
)
from sfstack.app_shell.config import AppConfig
from sfstack.app_shell.rate_limit import RateLimiter
from sfstack.components.bootstrap import (
    BootstrapBusyError,
    BootstrapConflictError,
    BootstrapError,
    BootstrapGate,
    BootstrapValidationError,
    FirstUserInput,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class ExistsResponse(BaseModel):
    exists: bool


class CreateResponse(BaseModel):
    success: bool


class AuthStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_authenticated: bool = Field(alias="isAuthenticated")
    can_create_admin: bool = Field(alias="canCreateAdmin")


def _to_http(exc: BootstrapError) -> HTTPException:
    if isinstance(exc, BootstrapValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": exc.code, "field": exc.field, "message": exc.message},
        )
    if isinstance(exc, BootstrapConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, BootstrapBusyError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    # Store failures and a broken placeholder invariant are server-side problems
    logger.error("Bootstrap failed: %s", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get(
    "/exists",
    response_model=ExistsResponse,
    dependencies=[Depends(require_registration_enabled)],
)
def user_exists(gate: BootstrapGate = Depends(get_bootstrap_gate)) -> ExistsResponse:
    """Whether any account beyond the initial placeholder exists."""
    try:
        return ExistsResponse(exists=gate.check_exists())
    except BootstrapError as e:
        raise _to_http(e) from e


@router.post(
    "/create",
    response_model=CreateResponse,
    dependencies=[Depends(require_registration_enabled)],
)
def create_first_user(
    request: Request,
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    password_confirm: Annotated[str, Form(alias="passwordConfirm")] = "",
    gate: BootstrapGate = Depends(get_bootstrap_gate),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> CreateResponse:
    """Create the first user and a matching superuser while the system is fresh."""
    if not limiter.check_bootstrap(client_key(request)):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many attempts, try again later",
        )

    inp = FirstUserInput(email=email, password=password, password_confirm=password_confirm)
    try:
        return CreateResponse(success=gate.create_first_user(inp))
    except BootstrapError as e:
        raise _to_http(e) from e


@router.get("/is-authenticated", response_model=AuthStatusResponse, response_model_by_alias=True)
def is_authenticated(
    auth: RequestAuthContext = Depends(get_auth_context),
    gate: BootstrapGate = Depends(get_bootstrap_gate),
    settings: AppConfig = Depends(get_settings),
) -> AuthStatusResponse:
    """Check the caller's auth state and whether admin creation is still allowed."""
    try:
        result = gate.is_authenticated(
            auth, registration_enabled=settings.general.initial_admin_registration
        )
    except BootstrapError as e:
        raise _to_http(e) from e
    return AuthStatusResponse(
        is_authenticated=result.authenticated,
        can_create_admin=result.can_bootstrap,
    )
