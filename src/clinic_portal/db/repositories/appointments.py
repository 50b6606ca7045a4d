"""
clinic_portal.db.repositories.appointments

Repository for `Appointment` entities.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clinic_portal.db.models import Appointment, AppointmentStatus, utcnow


class AppointmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        patient_id: uuid.UUID,
        professional_id: str,
        starts_at: datetime,
        ends_at: datetime,
        notes: str | None = None,
    ) -> Appointment:
        appt = Appointment(
            patient_id=patient_id,
            professional_id=professional_id,
            starts_at=starts_at,
            ends_at=ends_at,
            notes=notes,
            status=AppointmentStatus.scheduled,
        )
        self._session.add(appt)
        await self._session.flush()
        return appt

    async def get(self, appointment_id: uuid.UUID) -> Appointment | None:
        stmt = (
            select(Appointment)
            .where(Appointment.id == appointment_id)
            .options(selectinload(Appointment.patient))
            .execution_options(populate_existing=True)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_between(
        self,
        start: datetime,
        end: datetime,
        *,
        professional_id: str | None = None,
    ) -> list[Appointment]:
        # Half-open window [start, end) on the start time.
        stmt = (
            select(Appointment)
            .where(Appointment.starts_at >= start, Appointment.starts_at < end)
            .options(selectinload(Appointment.patient))
            .order_by(Appointment.starts_at.asc())
        )
        if professional_id is not None:
            stmt = stmt.where(Appointment.professional_id == professional_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def set_status(
        self, appointment_id: uuid.UUID, status: AppointmentStatus
    ) -> Appointment | None:
        appt = await self._session.get(Appointment, appointment_id)
        if appt is None:
            return None
        appt.status = status
        appt.updated_at = utcnow()
        await self._session.flush()
        return appt
