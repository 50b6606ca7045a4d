"""
clinic_portal.session

Session lifecycle package.

Responsibilities:
- Keep a locally-consistent view of "who is logged in and what is their profile".
- Define the collaborator contracts (AuthBackend, ProfileStore) and error kinds.
"""

from clinic_portal.session.coordinator import SessionCoordinator
from clinic_portal.session.errors import ErrorKind
from clinic_portal.session.state import CoordinatorState, SessionPhase

__all__ = ["CoordinatorState", "ErrorKind", "SessionCoordinator", "SessionPhase"]
