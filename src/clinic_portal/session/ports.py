"""
clinic_portal.session.ports

Collaborator contracts consumed by the session coordinator.

Responsibilities:
- Describe the auth backend (session retrieval, push subscription, sign-out).
- Describe the profile store (fetch-by-id).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from clinic_portal.auth.models import AuthEvent, AuthSession, Profile

AuthStateHandler = Callable[[AuthEvent, AuthSession | None], None]


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class AuthBackend(Protocol):
    async def get_session(self) -> AuthSession | None:
        """Return the active session or None; raise ConnectivityError on failure."""
        ...

    def on_auth_state_change(self, handler: AuthStateHandler) -> Subscription: ...

    async def sign_out(self) -> None:
        """Raise ConnectivityError when the remote sign-out fails."""
        ...


class ProfileStore(Protocol):
    async def get_by_id(self, profile_id: str) -> Profile | None:
        """Return the profile or None; raise BackendError on failure."""
        ...


# --- Module Notes -----------------------------------------------------------
# Handlers are plain callables: the backend fires them synchronously and the
# coordinator turns each fire into one task on the event loop.
