"""
clinic_portal.api.routers.appointments

Daily agenda: list, schedule and cancel appointments.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from clinic_portal.api.deps import db_session
from clinic_portal.api.errors import service_errors
from clinic_portal.auth.deps import get_profile
from clinic_portal.auth.models import Profile
from clinic_portal.db.models import Appointment, AppointmentStatus
from clinic_portal.services.appointments import AppointmentService
from clinic_portal.services.filters import full_name

router = APIRouter(prefix="/v1/appointments", tags=["appointments"])


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    professional_id: str
    starts_at: datetime
    ends_at: datetime
    status: AppointmentStatus
    notes: str | None = None
    patient_name: str | None = None


class AppointmentCreateRequest(BaseModel):
    patient_id: uuid.UUID
    starts_at: datetime
    ends_at: datetime
    notes: str | None = Field(default=None, max_length=2000)


def _to_out(appointment: Appointment) -> AppointmentOut:
    out = AppointmentOut.model_validate(appointment)
    out.patient_name = full_name(appointment.patient.first_name, appointment.patient.last_name)
    return out


@router.get("", response_model=list[AppointmentOut])
async def list_appointments(
    day: date | None = Query(default=None),
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
) -> list[AppointmentOut]:
    appointments = await AppointmentService(session=session).list_for_day(
        viewer=viewer, day=day or date.today()
    )
    return [_to_out(a) for a in appointments]


@router.post("", response_model=AppointmentOut, status_code=HTTP_201_CREATED)
async def schedule_appointment(
    body: AppointmentCreateRequest,
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
) -> AppointmentOut:
    with service_errors():
        appointment = await AppointmentService(session=session).schedule(
            viewer=viewer,
            patient_id=body.patient_id,
            starts_at=body.starts_at,
            ends_at=body.ends_at,
            notes=body.notes,
        )
    return _to_out(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentOut)
async def cancel_appointment(
    appointment_id: uuid.UUID,
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
) -> AppointmentOut:
    with service_errors():
        appointment = await AppointmentService(session=session).cancel(
            viewer=viewer, appointment_id=appointment_id
        )
    return _to_out(appointment)
