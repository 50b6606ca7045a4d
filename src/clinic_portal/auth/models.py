"""
clinic_portal.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity (`Principal`) and the backend session wrapping it.
- Define the clinic `Profile` attached to every principal and its `UserRole`.
- Enumerate pushed auth-state events.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta


class UserRole(enum.StrEnum):
    admin = "admin"
    professional = "professional"


class AuthEvent(enum.StrEnum):
    # Event names follow the hosted backend's push channel.
    signed_in = "SIGNED_IN"
    signed_out = "SIGNED_OUT"
    token_refreshed = "TOKEN_REFRESHED"
    user_updated = "USER_UPDATED"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated identity as reported by the auth backend.
    """

    subject: str
    email: str | None = None
    provider: str | None = None
    last_sign_in_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class AuthSession:
    access_token: str
    refresh_token: str
    expires_at: datetime
    principal: Principal
    token_type: str = "bearer"

    def expires_within(self, margin: timedelta, *, now: datetime | None = None) -> bool:
        now = now or datetime.now(tz=UTC)
        return self.expires_at - margin <= now


@dataclass(frozen=True, slots=True)
class Profile:
    """
    Clinic profile of a principal (one per principal, keyed by the principal subject).
    """

    id: str
    role: UserRole
    first_name: str | None = None
    last_name: str | None = None
    specialty: str | None = None
    bio: str | None = None
    phone: str | None = None
    email: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


# --- Module Notes -----------------------------------------------------------
# These models are immutable; the coordinator replaces them wholesale on every
# refresh or push event instead of mutating them in place.
