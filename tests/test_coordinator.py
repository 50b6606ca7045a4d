"""
tests.test_coordinator

Behavior of the session coordinator against in-memory collaborators.

Responsibilities:
- Initial load, push events, manual refresh and sign-out.
- Failure handling (connectivity, profile fetch, remote sign-out).
- Timers (startup watchdog, inactivity re-validation, periodic refresh) and teardown.
"""

from __future__ import annotations

import asyncio

import pytest

from clinic_portal.auth.models import AuthEvent, UserRole
from clinic_portal.session import ErrorKind, SessionPhase
from clinic_portal.session.coordinator import ActivityKind, SessionCoordinator
from clinic_portal.session.errors import BackendError, ConnectivityError
from tests.fakes import BRUNO, FakeProfileStore, make_session


def _assert_consistent(coordinator) -> None:
    # A profile is only ever held for the current principal.
    if coordinator.profile is not None:
        assert coordinator.principal is not None
        assert coordinator.profile.id == coordinator.principal.subject


@pytest.mark.asyncio
async def test_initial_load_resolves_principal_and_profile(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    assert coordinator.phase == SessionPhase.uninitialized

    await coordinator.initialize()
    await coordinator.wait_idle()

    state = coordinator.state
    assert state.principal is not None and state.principal.subject == "u1"
    assert state.profile is not None and state.profile.first_name == "Ana"
    assert state.role == UserRole.admin.value
    assert state.loading is False
    assert state.last_error is None
    assert state.phase == SessionPhase.authenticated
    _assert_consistent(coordinator)


@pytest.mark.asyncio
async def test_no_session_settles_anonymous(auth, profiles, make_coordinator) -> None:
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()

    assert coordinator.principal is None
    assert coordinator.profile is None
    assert coordinator.loading is False
    assert coordinator.last_error is None
    assert coordinator.phase == SessionPhase.anonymous
    assert profiles.calls == []


@pytest.mark.asyncio
async def test_missing_profile_keeps_principal_without_error(auth, make_coordinator) -> None:
    auth.session = make_session("u-unknown")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()

    assert coordinator.principal is not None
    assert coordinator.profile is None
    assert coordinator.loading is False
    assert coordinator.last_error is None


@pytest.mark.asyncio
async def test_connectivity_failure_keeps_previous_state(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()
    before = coordinator.state

    auth.get_session_error = ConnectivityError("unreachable")
    await coordinator.refresh()

    assert coordinator.principal == before.principal
    assert coordinator.profile == before.profile
    assert coordinator.loading is False
    assert coordinator.last_error == ErrorKind.connectivity

    notes = coordinator.notifications.drain()
    assert [n.kind for n in notes] == [ErrorKind.connectivity]
    assert coordinator.notifications.drain() == []


@pytest.mark.asyncio
async def test_successful_refresh_clears_previous_error(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    auth.get_session_error = ConnectivityError("unreachable")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()
    assert coordinator.last_error == ErrorKind.connectivity
    assert coordinator.principal is None

    auth.get_session_error = None
    await coordinator.refresh()

    assert coordinator.last_error is None
    assert coordinator.principal is not None and coordinator.principal.subject == "u1"


@pytest.mark.asyncio
async def test_profile_fetch_failure_keeps_principal(auth, profiles, make_coordinator) -> None:
    auth.session = make_session("u1")
    profiles.error = BackendError("db down")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()

    assert coordinator.principal is not None and coordinator.principal.subject == "u1"
    assert coordinator.profile is None
    assert coordinator.loading is False
    assert coordinator.last_error == ErrorKind.profile_fetch_failed


@pytest.mark.asyncio
async def test_profile_fetch_failure_keeps_cached_profile(auth, profiles, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()

    profiles.error = BackendError("db down")
    await coordinator.refresh()

    assert coordinator.profile is not None and coordinator.profile.id == "u1"
    assert coordinator.last_error == ErrorKind.profile_fetch_failed


@pytest.mark.asyncio
async def test_push_switches_principal_and_reloads_profile(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()

    auth.push(AuthEvent.signed_in, make_session("u2"))
    await coordinator.wait_idle()

    assert coordinator.principal is not None and coordinator.principal.subject == "u2"
    assert coordinator.profile == BRUNO
    assert coordinator.state.role == UserRole.professional.value
    _assert_consistent(coordinator)


@pytest.mark.asyncio
async def test_push_signed_out_clears_everything(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()

    auth.push(AuthEvent.signed_out, None)
    await coordinator.wait_idle()

    assert coordinator.principal is None
    assert coordinator.profile is None
    assert coordinator.phase == SessionPhase.anonymous


@pytest.mark.asyncio
async def test_stale_profile_result_is_dropped(auth, profiles, make_coordinator) -> None:
    auth.session = make_session("u1")
    gate = asyncio.Event()
    profiles.gate = gate
    coordinator = make_coordinator()
    await coordinator.initialize()
    for _ in range(5):
        await asyncio.sleep(0)
    assert profiles.calls == ["u1"]

    # The principal changes while the u1 lookup is still out.
    profiles.gate = None
    auth.push(AuthEvent.signed_in, make_session("u2"))
    for _ in range(5):
        await asyncio.sleep(0)
    assert coordinator.profile == BRUNO

    gate.set()
    await coordinator.wait_idle()

    assert coordinator.principal is not None and coordinator.principal.subject == "u2"
    assert coordinator.profile == BRUNO
    _assert_consistent(coordinator)


@pytest.mark.asyncio
async def test_sign_out_clears_locally_before_remote_call(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()

    auth.sign_out_gate = asyncio.Event()
    task = asyncio.create_task(coordinator.sign_out())
    await asyncio.sleep(0)

    assert auth.sign_out_calls == 1
    assert coordinator.principal is None
    assert coordinator.profile is None
    assert coordinator.loading is True

    auth.sign_out_gate.set()
    await task

    assert coordinator.loading is False
    assert coordinator.last_error is None
    assert coordinator.phase == SessionPhase.anonymous


@pytest.mark.asyncio
async def test_sign_out_remote_failure_is_reported_without_rollback(
    auth, make_coordinator
) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()

    auth.sign_out_error = ConnectivityError("offline")
    await coordinator.sign_out()

    assert coordinator.principal is None
    assert coordinator.profile is None
    assert coordinator.loading is False
    assert coordinator.last_error == ErrorKind.sign_out_local_only
    assert [n.kind for n in coordinator.notifications.drain()] == [ErrorKind.sign_out_local_only]


@pytest.mark.asyncio
async def test_sign_out_is_not_undone_by_in_flight_refresh(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()

    # A refresh goes out while the session still exists...
    auth.get_session_gate = asyncio.Event()
    refresh = asyncio.create_task(coordinator.refresh())
    await asyncio.sleep(0)

    # ...the user signs out, then the refresh answers with the old session.
    await coordinator.sign_out()
    auth.get_session_gate.set()
    await refresh
    await coordinator.wait_idle()

    assert coordinator.principal is None
    assert coordinator.profile is None
    assert coordinator.loading is False
    assert coordinator.phase == SessionPhase.anonymous


@pytest.mark.asyncio
async def test_push_after_close_is_ignored(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()
    handler = auth.handlers[0]
    before = coordinator.state

    await coordinator.close()
    assert auth.handlers == []
    assert coordinator.mounted is False

    # A late event that was already on its way to the old handler.
    handler(AuthEvent.signed_in, make_session("u2"))
    await asyncio.sleep(0)

    assert coordinator.state == before


@pytest.mark.asyncio
async def test_close_is_idempotent_and_stops_operations(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()
    calls = auth.get_session_calls

    await coordinator.close()
    await coordinator.close()
    await coordinator.refresh()
    await coordinator.sign_out()

    assert auth.get_session_calls == calls
    assert auth.sign_out_calls == 0
    assert coordinator.principal is not None


@pytest.mark.asyncio
async def test_close_during_refresh_leaves_state_untouched(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    auth.get_session_gate = asyncio.Event()
    coordinator = make_coordinator()
    await coordinator.initialize()
    await asyncio.sleep(0)

    await coordinator.close()
    auth.get_session_gate.set()
    await asyncio.sleep(0)

    assert coordinator.principal is None
    assert coordinator.profile is None


@pytest.mark.asyncio
async def test_startup_watchdog_unsticks_loading(auth, profiles, make_coordinator) -> None:
    auth.session = make_session("u1")
    profiles.gate = asyncio.Event()
    coordinator = make_coordinator(startup_timeout=0.05)
    await coordinator.initialize()

    assert coordinator.loading is True
    await asyncio.sleep(0.15)

    assert coordinator.loading is False
    assert coordinator.last_error == ErrorKind.startup_timeout
    assert [n.kind for n in coordinator.notifications.drain()] == [ErrorKind.startup_timeout]


@pytest.mark.asyncio
async def test_startup_watchdog_fires_when_session_lookup_hangs(
    auth, make_coordinator
) -> None:
    auth.session = make_session("u1")
    auth.get_session_gate = asyncio.Event()
    coordinator = make_coordinator(startup_timeout=0.2)
    await coordinator.initialize()

    await asyncio.sleep(0.1)
    assert coordinator.loading is True
    assert coordinator.last_error is None

    await asyncio.sleep(0.2)
    assert coordinator.loading is False
    assert coordinator.principal is None
    assert coordinator.last_error == ErrorKind.startup_timeout

    # A late answer is still applied.
    auth.get_session_gate.set()
    await coordinator.wait_idle()
    assert coordinator.principal.subject == "u1"
    assert coordinator.profile.id == "u1"
    assert coordinator.last_error is None


@pytest.mark.asyncio
async def test_fetch_profile_while_anonymous_leaves_loading_clear(
    auth, profiles, make_coordinator
) -> None:
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()
    assert coordinator.phase == SessionPhase.anonymous

    await coordinator.fetch_profile("u1")

    assert coordinator.loading is False
    assert coordinator.phase == SessionPhase.anonymous
    assert profiles.calls == []


@pytest.mark.asyncio
async def test_fetch_profile_for_other_subject_is_ignored(
    auth, profiles, make_coordinator
) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.wait_idle()
    calls = list(profiles.calls)

    await coordinator.fetch_profile("u2")

    assert coordinator.loading is False
    assert coordinator.phase == SessionPhase.authenticated
    assert coordinator.profile.id == "u1"
    assert profiles.calls == calls


@pytest.mark.asyncio
async def test_startup_watchdog_is_silent_once_settled(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator(startup_timeout=0.05)
    await coordinator.initialize()
    await coordinator.wait_idle()

    await asyncio.sleep(0.15)

    assert coordinator.last_error is None
    assert coordinator.notifications.pending() == 0


@pytest.mark.asyncio
async def test_inactivity_triggers_revalidation(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator(inactivity_timeout=0.05)
    await coordinator.initialize()
    await coordinator.wait_idle()
    calls = auth.get_session_calls

    await asyncio.sleep(0.12)
    await coordinator.wait_idle()

    assert auth.get_session_calls > calls


@pytest.mark.asyncio
async def test_activity_postpones_inactivity_revalidation(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator(inactivity_timeout=0.3)
    await coordinator.initialize()
    await coordinator.wait_idle()
    calls = auth.get_session_calls

    for kind in (ActivityKind.pointer, ActivityKind.key, ActivityKind.touch, ActivityKind.scroll):
        await asyncio.sleep(0.1)
        coordinator.record_activity(kind)

    assert auth.get_session_calls == calls


@pytest.mark.asyncio
async def test_no_inactivity_revalidation_while_anonymous(auth, make_coordinator) -> None:
    coordinator = make_coordinator(inactivity_timeout=0.05)
    await coordinator.initialize()
    await coordinator.wait_idle()
    calls = auth.get_session_calls

    coordinator.record_activity(ActivityKind.pointer)
    await asyncio.sleep(0.12)

    assert auth.get_session_calls == calls


@pytest.mark.asyncio
async def test_periodic_refresh_runs_on_interval(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator(refresh_interval=0.05)
    await coordinator.initialize()
    await asyncio.sleep(0.18)

    # Initial refresh plus at least two periodic ones.
    assert auth.get_session_calls >= 3


@pytest.mark.asyncio
async def test_periodic_refresh_stops_after_sign_out(auth, make_coordinator) -> None:
    auth.session = make_session("u1")
    coordinator = make_coordinator(refresh_interval=0.05)
    await coordinator.initialize()
    await coordinator.wait_idle()

    await coordinator.sign_out()
    calls = auth.get_session_calls
    await asyncio.sleep(0.15)

    assert auth.get_session_calls == calls


@pytest.mark.asyncio
async def test_initialize_is_idempotent(auth, make_coordinator) -> None:
    coordinator = make_coordinator()
    await coordinator.initialize()
    await coordinator.initialize()
    await coordinator.wait_idle()

    assert len(auth.handlers) == 1
    assert auth.get_session_calls == 1


@pytest.mark.asyncio
async def test_async_context_manager(auth) -> None:
    auth.session = make_session("u2")
    async with SessionCoordinator(auth=auth, profiles=FakeProfileStore(BRUNO)) as coordinator:
        await coordinator.wait_idle()
        assert coordinator.profile == BRUNO
    assert coordinator.mounted is False
    assert auth.handlers == []
