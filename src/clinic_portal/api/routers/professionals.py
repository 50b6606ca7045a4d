"""
clinic_portal.api.routers.professionals

Clinic professionals directory and profile editing.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.api.deps import db_session
from clinic_portal.api.errors import service_errors
from clinic_portal.api.schemas import ProfileOut
from clinic_portal.auth.deps import coordinator_from_app, get_profile
from clinic_portal.auth.models import Profile
from clinic_portal.services.professionals import ProfessionalService
from clinic_portal.session.coordinator import SessionCoordinator

router = APIRouter(prefix="/v1/professionals", tags=["professionals"])


class ProfileUpdateRequest(BaseModel):
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    specialty: str | None = Field(default=None, max_length=120)
    bio: str | None = None
    phone: str | None = Field(default=None, max_length=32)
    email: str | None = Field(default=None, max_length=256)


@router.get("", response_model=list[ProfileOut])
async def list_professionals(
    search: str | None = Query(default=None, max_length=100),
    _viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
) -> list[ProfileOut]:
    records = await ProfessionalService(session=session).list_professionals(search=search)
    return [ProfileOut.model_validate(r) for r in records]


@router.patch("/{profile_id}", response_model=ProfileOut)
async def update_profile(
    profile_id: str,
    body: ProfileUpdateRequest,
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> ProfileOut:
    with service_errors():
        record = await ProfessionalService(session=session).update_profile(
            viewer=viewer, profile_id=profile_id, fields=body.model_dump(exclude_unset=True)
        )
    if profile_id == viewer.id:
        # Keep the cached session profile in step with the edit.
        await coordinator.fetch_profile(profile_id)
    return ProfileOut.model_validate(record)
