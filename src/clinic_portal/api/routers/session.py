"""
clinic_portal.api.routers.session

Session endpoints backed by the app-wide SessionCoordinator.

Responsibilities:
- Expose the coordinator snapshot (principal, profile, loading, last error).
- Password sign-in against the hosted auth service, manual refresh and sign-out.
- Activity pings that keep the inactivity watchdog from firing.
- Drain user-facing notifications produced by session errors.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from starlette.status import (
    HTTP_204_NO_CONTENT,
    HTTP_401_UNAUTHORIZED,
    HTTP_501_NOT_IMPLEMENTED,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from clinic_portal.api.schemas import ProfileOut
from clinic_portal.auth.deps import coordinator_from_app, get_optional_principal, get_principal
from clinic_portal.auth.grants import issue_grant
from clinic_portal.auth.models import Principal
from clinic_portal.backend.hosted_auth import AuthRejectedError
from clinic_portal.observability.logging import get_logger
from clinic_portal.session.coordinator import ActivityKind, SessionCoordinator
from clinic_portal.session.errors import ConnectivityError
from clinic_portal.session.state import CoordinatorState

log = get_logger(__name__)

router = APIRouter(prefix="/v1/session", tags=["session"])


class PrincipalOut(BaseModel):
    subject: str
    email: str | None = None
    provider: str | None = None
    last_sign_in_at: datetime | None = None


class SessionResponse(BaseModel):
    phase: str
    loading: bool
    last_error: str | None = None
    role: str | None = None
    principal: PrincipalOut | None = None
    profile: ProfileOut | None = None


class SignInResponse(SessionResponse):
    # Present on every later request as `Authorization: Bearer <access_token>`.
    access_token: str | None = None
    token_type: str = "bearer"


class SignInRequest(BaseModel):
    email: str = Field(min_length=3, max_length=256)
    password: str = Field(min_length=1, max_length=256)


class ActivityRequest(BaseModel):
    kind: ActivityKind


class NotificationOut(BaseModel):
    kind: str | None = None
    message: str
    level: str
    created_at: datetime


def _to_response(state: CoordinatorState) -> SessionResponse:
    principal = state.principal
    profile = state.profile
    return SessionResponse(
        phase=state.phase.value,
        loading=state.loading,
        last_error=state.last_error.value if state.last_error is not None else None,
        role=state.role,
        principal=(
            PrincipalOut(
                subject=principal.subject,
                email=principal.email,
                provider=principal.provider,
                last_sign_in_at=principal.last_sign_in_at,
            )
            if principal is not None
            else None
        ),
        profile=ProfileOut.model_validate(profile) if profile is not None else None,
    )


@router.get("", response_model=SessionResponse)
async def get_session(
    _principal: Principal | None = Depends(get_optional_principal),
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> SessionResponse:
    return _to_response(coordinator.state)


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(
    request: Request,
    body: SignInRequest,
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> SignInResponse:
    auth = request.app.state.auth  # type: ignore[attr-defined]
    sign_in_with_password = getattr(auth, "sign_in_with_password", None)
    if sign_in_with_password is None:
        raise HTTPException(
            status_code=HTTP_501_NOT_IMPLEMENTED, detail="Password sign-in is not available"
        )
    try:
        session = await sign_in_with_password(email=body.email, password=body.password)
    except AuthRejectedError as e:
        log.info("sign_in_rejected", error=str(e))
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid credentials") from e
    except ConnectivityError as e:
        raise HTTPException(
            status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="Auth service unreachable"
        ) from e

    # The SIGNED_IN push resolves asynchronously; answer with the settled state.
    await coordinator.wait_idle()
    subject = session.principal.subject
    principal = coordinator.principal
    grant = None
    if principal is not None and principal.subject == subject:
        # A new sign-in replaces the previous UI's grant.
        grant = issue_grant(subject)
        log.info("client_grant_issued", principal_id=subject)
    request.app.state.client_grant = grant  # type: ignore[attr-defined]
    response = _to_response(coordinator.state)
    return SignInResponse(
        **response.model_dump(),
        access_token=grant.token if grant is not None else None,
    )


@router.post("/refresh", response_model=SessionResponse)
async def refresh(
    _principal: Principal | None = Depends(get_optional_principal),
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> SessionResponse:
    await coordinator.refresh()
    return _to_response(coordinator.state)


@router.post("/sign-out", response_model=SessionResponse)
async def sign_out(
    request: Request,
    principal: Principal | None = Depends(get_optional_principal),
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> SessionResponse:
    request.app.state.client_grant = None  # type: ignore[attr-defined]
    if principal is not None:
        log.info("client_grant_revoked", principal_id=principal.subject)
    await coordinator.sign_out()
    await coordinator.wait_idle()
    return _to_response(coordinator.state)


@router.post("/activity", status_code=HTTP_204_NO_CONTENT)
async def record_activity(
    body: ActivityRequest,
    _principal: Principal = Depends(get_principal),
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> None:
    coordinator.record_activity(body.kind)


@router.get("/notifications", response_model=list[NotificationOut])
async def drain_notifications(
    _principal: Principal | None = Depends(get_optional_principal),
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> list[NotificationOut]:
    return [
        NotificationOut(
            kind=n.kind.value if n.kind is not None else None,
            message=n.message,
            level=n.level,
            created_at=n.created_at,
        )
        for n in coordinator.notifications.drain()
    ]


# --- Module Notes -----------------------------------------------------------
# The portal runs one coordinator per process, so these endpoints describe the
# session of the single clinic UI operating this instance. That UI is the holder
# of the grant issued at sign-in. While nobody is signed in, the session view,
# refresh, sign-out and notifications stay open so the UI can show the
# signed-out state and its last error.
