"""
clinic_portal.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Bind each request's bearer token to the coordinator's signed-in principal.
- Read the signed-in principal/profile from the app's session coordinator.
- Enforce role-gated views via reusable dependency factories.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from clinic_portal.auth.grants import ClientGrant
from clinic_portal.auth.models import Principal, Profile, UserRole
from clinic_portal.session.coordinator import SessionCoordinator

_bearer = HTTPBearer(auto_error=False)


def coordinator_from_app(request: Request) -> SessionCoordinator:
    # The coordinator is created and initialized by the app lifespan (`api.app`).
    return request.app.state.coordinator  # type: ignore[attr-defined]


def grant_from_app(request: Request) -> ClientGrant | None:
    return getattr(request.app.state, "client_grant", None)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def authenticate(
    principal: Principal | None,
    grant: ClientGrant | None,
    creds: HTTPAuthorizationCredentials | None,
) -> Principal:
    """Return `principal` if `creds` carry the grant issued for it, else raise 401."""
    if principal is None:
        raise _unauthorized("Not signed in")
    # Authn: require a bearer token.
    if creds is None or not creds.credentials:
        raise _unauthorized("Missing bearer token")
    # The grant is tied to the subject it was issued for; a session that changed
    # hands (push from another tab, backend sign-in) invalidates it.
    if grant is None or not grant.matches(creds.credentials, subject=principal.subject):
        raise _unauthorized("Invalid bearer token")
    return principal


def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    grant: ClientGrant | None = Depends(grant_from_app),
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> Principal:
    return authenticate(coordinator.principal, grant, creds)


def get_optional_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    grant: ClientGrant | None = Depends(grant_from_app),
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> Principal | None:
    """Anonymous callers pass while nobody is signed in; a signed-in session needs its token."""
    principal = coordinator.principal
    if principal is None:
        return None
    return authenticate(principal, grant, creds)


def get_profile(
    principal: Principal = Depends(get_principal),
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> Profile:
    profile = coordinator.profile
    if profile is None and coordinator.loading:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="Session is loading")
    if profile is None or profile.id != principal.subject:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="No clinic profile")
    return profile


def require_roles(*required: UserRole):
    required_set = frozenset(required)

    def _dep(profile: Profile = Depends(get_profile)) -> Profile:
        # Admins see every view.
        if profile.is_admin:
            return profile
        if profile.role not in required_set:
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient role")
        return profile

    return _dep


# --- Module Notes -----------------------------------------------------------
# Every clinic route goes through `get_principal`. Holding a grant token is the
# only way to act as the coordinator's principal; the token is issued by
# `POST /v1/session/sign-in` and dropped on sign-out.
