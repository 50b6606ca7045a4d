"""
clinic_portal.services.patients

Patient management.

Responsibilities:
- List patients newest first (admins see every patient, professionals their own).
- Create/update/delete patients on behalf of the signed-in professional.
- Attach each patient's latest payment for the patients table.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.auth.models import Profile
from clinic_portal.db.models import Patient, Transaction
from clinic_portal.db.repositories.patients import PatientRepo
from clinic_portal.db.repositories.transactions import TransactionRepo
from clinic_portal.observability.logging import get_logger
from clinic_portal.services.filters import matches

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PatientRow:
    patient: Patient
    last_transaction: Transaction | None


async def load_visible_patient(repo: PatientRepo, viewer: Profile, patient_id: uuid.UUID) -> Patient:
    patient = await repo.get(patient_id)
    # Other professionals' patients are reported as missing, not forbidden.
    if patient is None or (not viewer.is_admin and patient.professional_id != viewer.id):
        raise LookupError("patient not found")
    return patient


class PatientService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._patients = PatientRepo(session)
        self._transactions = TransactionRepo(session)

    async def list_patients(self, *, viewer: Profile, search: str | None = None) -> list[PatientRow]:
        owner = None if viewer.is_admin else viewer.id
        patients = [
            p
            for p in await self._patients.list(professional_id=owner)
            if matches(search, p.first_name, p.last_name)
        ]
        latest = await self._transactions.latest_for_patients(p.id for p in patients)
        return [PatientRow(patient=p, last_transaction=latest.get(p.id)) for p in patients]

    async def get_patient(self, *, viewer: Profile, patient_id: uuid.UUID) -> Patient:
        return await load_visible_patient(self._patients, viewer, patient_id)

    async def create_patient(self, *, viewer: Profile, fields: dict[str, Any]) -> Patient:
        _require_names(fields)
        patient = await self._patients.create(professional_id=viewer.id, **fields)
        await self._session.commit()
        log.info("patient_created", patient_id=str(patient.id), professional_id=viewer.id)
        return patient

    async def update_patient(
        self, *, viewer: Profile, patient_id: uuid.UUID, fields: dict[str, Any]
    ) -> Patient:
        await load_visible_patient(self._patients, viewer, patient_id)
        _require_names(fields, partial=True)
        patient = await self._patients.update(patient_id, **fields)
        if patient is None:
            raise LookupError("patient not found")
        await self._session.commit()
        log.info("patient_updated", patient_id=str(patient_id), fields=sorted(fields))
        return patient

    async def delete_patient(self, *, viewer: Profile, patient_id: uuid.UUID) -> None:
        await load_visible_patient(self._patients, viewer, patient_id)
        await self._patients.delete(patient_id)
        await self._session.commit()
        log.info("patient_deleted", patient_id=str(patient_id), actor=viewer.id)


def _require_names(fields: dict[str, Any], *, partial: bool = False) -> None:
    for key in ("first_name", "last_name"):
        if partial and key not in fields:
            continue
        if not str(fields.get(key) or "").strip():
            raise ValueError(f"{key} is required")
