"""
clinic_portal.session.coordinator

Session lifecycle coordinator.

Responsibilities:
- Own the local view of the authenticated principal and its clinic profile.
- Keep it fresh: immediate refresh, periodic refresh, pushed auth-state events and
  re-validation after user inactivity.
- Never leave `loading` stuck: a startup watchdog unsticks it after a fixed ceiling.
- Sign out optimistically (local state first, remote call second, no rollback).

Concurrency:
- Everything runs on one asyncio loop; state is only mutated between awaits.
- Every refresh/push/sign-out takes a new generation; a continuation whose generation
  is no longer current drops its result, so a sign-out cannot be undone by a refresh
  that was already in flight.
- After `close()` the mounted flag is down and every timer, task and subscription has
  been released; callbacks that still fire return without touching state.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Coroutine
from typing import Any

from clinic_portal.auth.models import AuthEvent, AuthSession, Principal, Profile
from clinic_portal.observability.logging import get_logger
from clinic_portal.session.errors import ErrorKind
from clinic_portal.session.notifications import Notification, NotificationCenter
from clinic_portal.session.ports import AuthBackend, ProfileStore, Subscription
from clinic_portal.session.state import CoordinatorState, SessionPhase
from clinic_portal.settings import Settings

log = get_logger(__name__)


class ActivityKind(enum.StrEnum):
    pointer = "pointer"
    key = "key"
    touch = "touch"
    scroll = "scroll"


_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.connectivity: "Could not reach the authentication service.",
    ErrorKind.profile_fetch_failed: "Could not load your profile.",
    ErrorKind.startup_timeout: "Loading your session is taking too long.",
    ErrorKind.sign_out_local_only: (
        "Your session was closed on this device, but the server could not be reached."
    ),
}


class SessionCoordinator:
    def __init__(
        self,
        *,
        auth: AuthBackend,
        profiles: ProfileStore,
        notifications: NotificationCenter | None = None,
        refresh_interval: float = 120.0,
        startup_timeout: float = 15.0,
        inactivity_timeout: float = 30 * 60.0,
    ) -> None:
        self._auth = auth
        self._profiles = profiles
        self.notifications = notifications or NotificationCenter()

        self._refresh_interval = refresh_interval
        self._startup_timeout = startup_timeout
        self._inactivity_timeout = inactivity_timeout

        self._principal: Principal | None = None
        self._profile: Profile | None = None
        self._loading = True
        self._last_error: ErrorKind | None = None

        self._initialized = False
        self._settled = False
        self._mounted = False
        self._generation = 0

        self._subscription: Subscription | None = None
        self._periodic: asyncio.Task[None] | None = None
        self._startup_watchdog: asyncio.TimerHandle | None = None
        self._inactivity_watchdog: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        auth: AuthBackend,
        profiles: ProfileStore,
        notifications: NotificationCenter | None = None,
    ) -> SessionCoordinator:
        return cls(
            auth=auth,
            profiles=profiles,
            notifications=notifications,
            refresh_interval=settings.session_refresh_interval_seconds,
            startup_timeout=settings.session_startup_timeout_seconds,
            inactivity_timeout=settings.session_inactivity_timeout_seconds,
        )

    # --- read-only view -------------------------------------------------------

    @property
    def principal(self) -> Principal | None:
        return self._principal

    @property
    def profile(self) -> Profile | None:
        return self._profile

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def last_error(self) -> ErrorKind | None:
        return self._last_error

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def phase(self) -> SessionPhase:
        if not self._initialized:
            return SessionPhase.uninitialized
        if self._loading:
            return SessionPhase.loading
        if self._principal is not None:
            return SessionPhase.authenticated
        return SessionPhase.anonymous

    @property
    def state(self) -> CoordinatorState:
        return CoordinatorState(
            principal=self._principal,
            profile=self._profile,
            loading=self._loading,
            last_error=self._last_error,
            phase=self.phase,
        )

    # --- lifecycle ------------------------------------------------------------

    async def initialize(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        self._mounted = True
        self._loading = True

        loop = asyncio.get_running_loop()
        self._subscription = self._auth.on_auth_state_change(self._handle_push)
        self._startup_watchdog = loop.call_later(self._startup_timeout, self._on_startup_timeout)
        self._ensure_periodic()
        self._spawn(self.refresh(), name="session-initial-refresh")
        log.info(
            "session_initialize",
            refresh_interval=self._refresh_interval,
            startup_timeout=self._startup_timeout,
            inactivity_timeout=self._inactivity_timeout,
        )

    async def close(self) -> None:
        if not self._mounted:
            return
        self._mounted = False

        if self._startup_watchdog is not None:
            self._startup_watchdog.cancel()
            self._startup_watchdog = None
        self._cancel_inactivity()
        periodic = self._periodic
        self._cancel_periodic()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        current = asyncio.current_task()
        pending = [t for t in (*self._tasks, periodic) if t is not None and t is not current]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        log.info("session_closed")

    async def __aenter__(self) -> SessionCoordinator:
        await self.initialize()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def wait_idle(self) -> None:
        """Wait until every queued coordinator task (refresh, push) has finished."""
        current = asyncio.current_task()
        while True:
            pending = [t for t in self._tasks if t is not current and not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # --- operations -----------------------------------------------------------

    async def refresh(self) -> None:
        if not self._mounted:
            return
        generation = self._next_generation()
        self._loading = True

        try:
            session = await self._auth.get_session()
        except Exception as e:
            if not self._is_current(generation):
                return
            log.warning("session_refresh_failed", generation=generation, error=str(e))
            self._record(ErrorKind.connectivity)
            self._loading = False
            self._mark_settled()
            return

        if not self._is_current(generation):
            log.debug("session_refresh_stale", generation=generation)
            return
        await self._apply_session(session, generation=generation)

    async def fetch_profile(self, profile_id: str, *, generation: int | None = None) -> None:
        if not self._mounted:
            return
        if generation is None:
            generation = self._generation
        # Only the current principal's own profile is ever loaded.
        if not self._owns(generation, profile_id):
            log.debug("profile_fetch_skipped", profile_id=profile_id, generation=generation)
            return
        self._loading = True

        try:
            profile = await self._profiles.get_by_id(profile_id)
        except Exception as e:
            if not self._owns(generation, profile_id):
                return
            log.warning("profile_fetch_failed", profile_id=profile_id, error=str(e))
            # The principal stays; a profile cached for this same principal stays too.
            self._record(ErrorKind.profile_fetch_failed)
            self._loading = False
            self._mark_settled()
            return

        if not self._owns(generation, profile_id):
            log.debug("profile_fetch_stale", profile_id=profile_id, generation=generation)
            return
        self._profile = profile
        self._last_error = None
        self._loading = False
        self._mark_settled()
        log.info(
            "profile_loaded",
            profile_id=profile_id,
            found=profile is not None,
            role=profile.role.value if profile is not None else None,
        )

    async def on_auth_state_changed(self, event: AuthEvent, session: AuthSession | None) -> None:
        if not self._mounted:
            return
        generation = self._next_generation()
        log.info(
            "auth_state_changed",
            auth_event=str(event),
            principal_id=session.principal.subject if session else None,
            generation=generation,
        )
        await self._apply_session(session, generation=generation)
        if self._is_current(generation):
            self._arm_inactivity()

    async def sign_out(self) -> None:
        if not self._mounted:
            return
        generation = self._next_generation()
        self._cancel_periodic()
        self._cancel_inactivity()

        principal_id = self._principal.subject if self._principal else None
        self._principal = None
        self._profile = None
        self._loading = True
        log.info("sign_out_local", principal_id=principal_id)

        try:
            await self._auth.sign_out()
        except Exception as e:
            log.warning("sign_out_remote_failed", principal_id=principal_id, error=str(e))
            if self._mounted:
                # Reported even when a newer operation has taken over; the local state stays cleared.
                self._record(ErrorKind.sign_out_local_only)
        else:
            if self._is_current(generation):
                self._last_error = None
        finally:
            if self._is_current(generation):
                self._loading = False

    def record_activity(self, kind: ActivityKind) -> None:
        if not self._mounted or self._principal is None:
            return
        log.debug("session_activity", kind=str(kind))
        self._arm_inactivity()

    # --- internals ------------------------------------------------------------

    async def _apply_session(self, session: AuthSession | None, *, generation: int) -> None:
        if session is None:
            self._principal = None
            self._profile = None
            # A local-only sign-out stays reported until a principal is back.
            if self._last_error != ErrorKind.sign_out_local_only:
                self._last_error = None
            self._loading = False
            self._cancel_inactivity()
            self._mark_settled()
            log.info("session_anonymous", generation=generation)
            return

        principal = session.principal
        previous = self._principal
        self._principal = principal
        if previous is None or previous.subject != principal.subject:
            self._profile = None
        self._arm_inactivity()
        self._ensure_periodic()
        await self.fetch_profile(principal.subject, generation=generation)

    def _handle_push(self, event: AuthEvent, session: AuthSession | None) -> None:
        if not self._mounted:
            return
        self._spawn(self.on_auth_state_changed(event, session), name=f"session-push-{event}")

    def _on_startup_timeout(self) -> None:
        self._startup_watchdog = None
        if not self._mounted or self._settled:
            return
        log.warning("session_startup_timeout", ceiling=self._startup_timeout)
        self._loading = False
        self._record(ErrorKind.startup_timeout)

    def _on_inactivity_timeout(self) -> None:
        self._inactivity_watchdog = None
        if not self._mounted:
            return
        log.info("session_inactivity_revalidate", idle_seconds=self._inactivity_timeout)
        self._spawn(self.refresh(), name="session-inactivity-refresh")

    async def _periodic_refresh(self) -> None:
        while self._mounted:
            await asyncio.sleep(self._refresh_interval)
            if not self._mounted:
                return
            await self.refresh()

    def _ensure_periodic(self) -> None:
        if not self._mounted:
            return
        if self._periodic is None or self._periodic.done():
            self._periodic = asyncio.get_running_loop().create_task(
                self._periodic_refresh(), name="session-periodic-refresh"
            )

    def _cancel_periodic(self) -> None:
        if self._periodic is not None:
            self._periodic.cancel()
            self._periodic = None

    def _arm_inactivity(self) -> None:
        self._cancel_inactivity()
        if not self._mounted or self._principal is None:
            return
        loop = asyncio.get_running_loop()
        self._inactivity_watchdog = loop.call_later(
            self._inactivity_timeout, self._on_inactivity_timeout
        )

    def _cancel_inactivity(self) -> None:
        if self._inactivity_watchdog is not None:
            self._inactivity_watchdog.cancel()
            self._inactivity_watchdog = None

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> None:
        if not self._mounted:
            coro.close()
            return
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return self._mounted and generation == self._generation

    def _owns(self, generation: int, profile_id: str) -> bool:
        return (
            self._is_current(generation)
            and self._principal is not None
            and self._principal.subject == profile_id
        )

    def _mark_settled(self) -> None:
        if self._settled:
            return
        self._settled = True
        if self._startup_watchdog is not None:
            self._startup_watchdog.cancel()
            self._startup_watchdog = None

    def _record(self, kind: ErrorKind) -> None:
        self._last_error = kind
        self.notifications.publish(Notification(kind=kind, message=_MESSAGES[kind]))


# --- Module Notes -----------------------------------------------------------
# The coordinator is owned by the API lifespan (`api.app`); one instance per UI
# context. UI code reads `state` and calls `refresh`, `sign_out`, `record_activity`.
