"""
clinic_portal.db.repositories.profiles

Repository for `ProfileRecord` entities.

Responsibilities:
- Fetch a profile by principal id (exactly-one lookup).
- List professionals and apply profile edits.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.auth.models import UserRole
from clinic_portal.db.models import ProfileRecord, utcnow

# Columns a profile edit may touch; id and role are owned by the auth side.
EDITABLE_FIELDS = frozenset({"first_name", "last_name", "specialty", "bio", "phone", "email"})


class ProfileRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, profile_id: str) -> ProfileRecord | None:
        return await self._session.get(ProfileRecord, profile_id)

    async def create(
        self,
        *,
        profile_id: str,
        role: UserRole,
        first_name: str | None = None,
        last_name: str | None = None,
        **fields: Any,
    ) -> ProfileRecord:
        record = ProfileRecord(
            id=profile_id,
            role=role,
            first_name=first_name,
            last_name=last_name,
            **{k: v for k, v in fields.items() if k in EDITABLE_FIELDS},
        )
        self._session.add(record)
        await self._session.flush()
        return record

    async def list_by_role(self, role: UserRole) -> list[ProfileRecord]:
        stmt = (
            select(ProfileRecord)
            .where(ProfileRecord.role == role)
            .order_by(ProfileRecord.first_name.asc())
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_by_role(self, role: UserRole) -> int:
        stmt = select(func.count()).select_from(ProfileRecord).where(ProfileRecord.role == role)
        return int((await self._session.execute(stmt)).scalar_one())

    async def update(self, profile_id: str, **fields: Any) -> ProfileRecord | None:
        record = await self._session.get(ProfileRecord, profile_id)
        if record is None:
            return None
        for key, value in fields.items():
            if key not in EDITABLE_FIELDS:
                raise ValueError(f"field not editable: {key}")
            setattr(record, key, value)
        record.updated_at = utcnow()
        await self._session.flush()
        return record
