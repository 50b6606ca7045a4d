"""
clinic_portal.services.professionals

Professionals directory.

Responsibilities:
- List professional profiles alphabetically with client-side search.
- Apply profile edits (admins edit anyone, professionals only themselves).
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.auth.models import Profile, UserRole
from clinic_portal.db.models import ProfileRecord
from clinic_portal.db.repositories.profiles import ProfileRepo
from clinic_portal.observability.logging import get_logger
from clinic_portal.services.filters import matches

log = get_logger(__name__)


class ProfessionalService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._profiles = ProfileRepo(session)

    async def list_professionals(self, *, search: str | None = None) -> list[ProfileRecord]:
        return [
            p
            for p in await self._profiles.list_by_role(UserRole.professional)
            if matches(search, p.first_name, p.last_name, p.specialty)
        ]

    async def update_profile(
        self, *, viewer: Profile, profile_id: str, fields: dict[str, Any]
    ) -> ProfileRecord:
        if not viewer.is_admin and viewer.id != profile_id:
            raise PermissionError("profiles can only be edited by their owner or an admin")
        record = await self._profiles.update(profile_id, **fields)
        if record is None:
            raise LookupError("profile not found")
        await self._session.commit()
        log.info("profile_updated", profile_id=profile_id, actor=viewer.id, fields=sorted(fields))
        return record
