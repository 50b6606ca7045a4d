"""
clinic_portal.session.state

Read-only snapshot of the coordinator state exposed to UI collaborators.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from clinic_portal.auth.models import Principal, Profile
from clinic_portal.session.errors import ErrorKind


class SessionPhase(enum.StrEnum):
    uninitialized = "UNINITIALIZED"
    loading = "LOADING"
    authenticated = "AUTHENTICATED"
    anonymous = "ANONYMOUS"


@dataclass(frozen=True, slots=True)
class CoordinatorState:
    principal: Principal | None
    profile: Profile | None
    loading: bool
    last_error: ErrorKind | None
    phase: SessionPhase

    @property
    def role(self) -> str | None:
        return self.profile.role.value if self.profile is not None else None
