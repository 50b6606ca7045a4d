"""
clinic_portal.auth.grants

Bearer grants that bind HTTP callers to the coordinator's signed-in session.

Responsibilities:
- Issue an opaque bearer token when a user signs in through this service.
- Check a presented token against the grant in constant time.

The grant outlives hosted access-token rotation: the coordinator may refresh its
backend tokens many times while the UI keeps presenting the same bearer token.
"""

from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True, slots=True)
class ClientGrant:
    token: str
    subject: str
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def matches(self, token: str, *, subject: str) -> bool:
        if subject != self.subject:
            return False
        return hmac.compare_digest(token.encode(), self.token.encode())


def issue_grant(subject: str) -> ClientGrant:
    return ClientGrant(token=secrets.token_urlsafe(32), subject=subject)
