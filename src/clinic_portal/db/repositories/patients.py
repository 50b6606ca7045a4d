"""
clinic_portal.db.repositories.patients

Repository for `Patient` entities.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.db.models import Appointment, Patient, Transaction, utcnow

PATIENT_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "date_of_birth",
        "email",
        "phone",
        "address",
        "diagnosis",
        "notes",
    }
)


class PatientRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, professional_id: str, **fields: Any) -> Patient:
        unknown = set(fields) - PATIENT_FIELDS
        if unknown:
            raise ValueError(f"unknown patient fields: {sorted(unknown)}")
        patient = Patient(professional_id=professional_id, **fields)
        self._session.add(patient)
        await self._session.flush()
        return patient

    async def get(self, patient_id: uuid.UUID) -> Patient | None:
        return await self._session.get(Patient, patient_id)

    async def list(self, *, professional_id: str | None = None) -> list[Patient]:
        # Newest first; id breaks ties between rows created in the same instant.
        stmt = select(Patient).order_by(desc(Patient.created_at), desc(Patient.id))
        if professional_id is not None:
            stmt = stmt.where(Patient.professional_id == professional_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def count(self, *, professional_id: str | None = None) -> int:
        stmt = select(func.count()).select_from(Patient)
        if professional_id is not None:
            stmt = stmt.where(Patient.professional_id == professional_id)
        return int((await self._session.execute(stmt)).scalar_one())

    async def update(self, patient_id: uuid.UUID, **fields: Any) -> Patient | None:
        patient = await self._session.get(Patient, patient_id)
        if patient is None:
            return None
        for key, value in fields.items():
            if key not in PATIENT_FIELDS:
                raise ValueError(f"field not editable: {key}")
            setattr(patient, key, value)
        patient.updated_at = utcnow()
        await self._session.flush()
        return patient

    async def delete(self, patient_id: uuid.UUID) -> bool:
        # Dependent rows first; the hosted schema cascades, sqlite does not by default.
        await self._session.execute(delete(Transaction).where(Transaction.patient_id == patient_id))
        await self._session.execute(delete(Appointment).where(Appointment.patient_id == patient_id))
        result = await self._session.execute(delete(Patient).where(Patient.id == patient_id))
        return bool(result.rowcount)
