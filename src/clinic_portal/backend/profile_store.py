"""
clinic_portal.backend.profile_store

ProfileStore backed by the `profiles` table.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_portal.auth.models import Profile
from clinic_portal.db.repositories.profiles import ProfileRepo
from clinic_portal.session.errors import BackendError


class SqlProfileStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, profile_id: str) -> Profile | None:
        try:
            # One short-lived session per lookup; the coordinator calls this from timers.
            async with self._session_factory() as session:
                record = await ProfileRepo(session).get(profile_id)
                return record.to_profile() if record is not None else None
        except SQLAlchemyError as e:
            raise BackendError(f"profile lookup failed: {e}") from e
