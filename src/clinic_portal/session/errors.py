"""
clinic_portal.session.errors

Error kinds and exceptions of the session layer.

Responsibilities:
- Name the error kinds recorded in `CoordinatorState.last_error`.
- Define the exceptions collaborators raise across the coordinator boundary.
"""

from __future__ import annotations

import enum


class ErrorKind(enum.StrEnum):
    connectivity = "connectivity"
    profile_fetch_failed = "profile-fetch-failed"
    startup_timeout = "startup-timeout"
    sign_out_local_only = "sign-out-local-only"


class SessionError(Exception):
    kind: ErrorKind | None = None


class ConnectivityError(SessionError):
    """Session retrieval or sign-out could not reach the auth backend."""

    kind = ErrorKind.connectivity


class BackendError(SessionError):
    """A data backend query failed (raised by ProfileStore implementations)."""

    kind = ErrorKind.profile_fetch_failed
