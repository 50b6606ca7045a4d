"""
tests.fakes

In-memory stand-ins for the hosted auth backend and the profile store.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

from clinic_portal.auth.models import AuthEvent, AuthSession, Principal, Profile, UserRole
from clinic_portal.backend.storage import StorageError
from clinic_portal.session.ports import AuthStateHandler


def make_session(subject: str = "u1", *, email: str | None = None) -> AuthSession:
    return AuthSession(
        access_token=f"access-{subject}",
        refresh_token=f"refresh-{subject}",
        expires_at=datetime.now(tz=UTC) + timedelta(hours=1),
        principal=Principal(subject=subject, email=email or f"{subject}@clinic.test"),
    )


class FakeSubscription:
    def __init__(self, backend: FakeAuthBackend, handler: AuthStateHandler) -> None:
        self._backend = backend
        self._handler = handler

    def unsubscribe(self) -> None:
        if self._handler in self._backend.handlers:
            self._backend.handlers.remove(self._handler)


class FakeAuthBackend:
    def __init__(self, session: AuthSession | None = None) -> None:
        self.session = session
        self.handlers: list[AuthStateHandler] = []
        self.get_session_error: Exception | None = None
        self.sign_out_error: Exception | None = None
        # When set, calls block until the event is set.
        self.get_session_gate: asyncio.Event | None = None
        self.sign_out_gate: asyncio.Event | None = None
        self.get_session_calls = 0
        self.sign_out_calls = 0

    async def get_session(self) -> AuthSession | None:
        self.get_session_calls += 1
        # The answer is decided when the request goes out, like a real round trip.
        session, error = self.session, self.get_session_error
        if self.get_session_gate is not None:
            await self.get_session_gate.wait()
        if error is not None:
            raise error
        return session

    def on_auth_state_change(self, handler: AuthStateHandler) -> FakeSubscription:
        self.handlers.append(handler)
        return FakeSubscription(self, handler)

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        if self.sign_out_gate is not None:
            await self.sign_out_gate.wait()
        if self.sign_out_error is not None:
            raise self.sign_out_error
        self.session = None

    def push(self, event: AuthEvent, session: AuthSession | None) -> None:
        self.session = session
        for handler in list(self.handlers):
            handler(event, session)


class FakeProfileStore:
    def __init__(self, *profiles: Profile) -> None:
        self.profiles = {p.id: p for p in profiles}
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[str] = []

    async def get_by_id(self, profile_id: str) -> Profile | None:
        self.calls.append(profile_id)
        profile, error = self.profiles.get(profile_id), self.error
        if self.gate is not None:
            await self.gate.wait()
        if error is not None:
            raise error
        return profile


ANA = Profile(id="u1", role=UserRole.admin, first_name="Ana", last_name="Silva")
BRUNO = Profile(
    id="u2", role=UserRole.professional, first_name="Bruno", last_name="Costa", specialty="Physio"
)


class FakeStorage:
    def __init__(self) -> None:
        self.uploads: list[tuple[str, str, bytes, str]] = []
        self.fail = False

    async def upload(self, *, bucket: str, path: str, content: bytes, content_type: str) -> str:
        if self.fail:
            raise StorageError("bucket unavailable")
        self.uploads.append((bucket, path, content, content_type))
        return f"{bucket}/{path}"
