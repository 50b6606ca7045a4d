"""
clinic_portal.services.appointments

Appointment agenda.

Responsibilities:
- List the appointments of one day (admins see the whole clinic).
- Schedule and cancel appointments for visible patients.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.auth.models import Profile
from clinic_portal.db.models import Appointment, AppointmentStatus
from clinic_portal.db.repositories.appointments import AppointmentRepo
from clinic_portal.db.repositories.patients import PatientRepo
from clinic_portal.observability.logging import get_logger
from clinic_portal.services.patients import load_visible_patient

log = get_logger(__name__)


class AppointmentService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._appointments = AppointmentRepo(session)
        self._patients = PatientRepo(session)

    async def list_for_day(self, *, viewer: Profile, day: date) -> list[Appointment]:
        start = datetime.combine(day, time.min)
        return await self._appointments.list_between(
            start,
            start + timedelta(days=1),
            professional_id=None if viewer.is_admin else viewer.id,
        )

    async def schedule(
        self,
        *,
        viewer: Profile,
        patient_id: uuid.UUID,
        starts_at: datetime,
        ends_at: datetime,
        notes: str | None = None,
    ) -> Appointment:
        starts_at, ends_at = _naive_utc(starts_at), _naive_utc(ends_at)
        if ends_at <= starts_at:
            raise ValueError("an appointment must end after it starts")
        patient = await load_visible_patient(self._patients, viewer, patient_id)
        appt = await self._appointments.create(
            patient_id=patient.id,
            # Admins book on behalf of the patient's own professional.
            professional_id=patient.professional_id,
            starts_at=starts_at,
            ends_at=ends_at,
            notes=notes,
        )
        await self._session.commit()
        log.info("appointment_scheduled", appointment_id=str(appt.id), patient_id=str(patient.id))
        return await self._appointments.get(appt.id) or appt

    async def cancel(self, *, viewer: Profile, appointment_id: uuid.UUID) -> Appointment:
        appt = await self._appointments.get(appointment_id)
        if appt is None or (not viewer.is_admin and appt.professional_id != viewer.id):
            raise LookupError("appointment not found")
        if appt.status == AppointmentStatus.completed:
            raise ValueError("completed appointments cannot be cancelled")
        updated = await self._appointments.set_status(appointment_id, AppointmentStatus.cancelled)
        await self._session.commit()
        log.info("appointment_cancelled", appointment_id=str(appointment_id), actor=viewer.id)
        return updated or appt


def _naive_utc(value: datetime) -> datetime:
    # Stored timestamps are naive UTC (see db.models.utcnow).
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
