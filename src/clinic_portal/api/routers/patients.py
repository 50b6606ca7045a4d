"""
clinic_portal.api.routers.patients

Patient records.

Responsibilities:
- List/search patients visible to the signed-in profile, with their latest payment.
- Create, read, update and delete patient records.
"""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from clinic_portal.api.deps import db_session
from clinic_portal.api.errors import service_errors
from clinic_portal.api.schemas import PatientOut, TransactionOut, transaction_out
from clinic_portal.auth.deps import get_profile
from clinic_portal.auth.models import Profile
from clinic_portal.services.patients import PatientService

router = APIRouter(prefix="/v1/patients", tags=["patients"])


class PatientCreateRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    date_of_birth: date | None = None
    email: str | None = Field(default=None, max_length=256)
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=256)
    diagnosis: str | None = None
    notes: str | None = None


class PatientUpdateRequest(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    date_of_birth: date | None = None
    email: str | None = Field(default=None, max_length=256)
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=256)
    diagnosis: str | None = None
    notes: str | None = None


class PatientListItem(BaseModel):
    patient: PatientOut
    last_transaction: TransactionOut | None = None


@router.get("", response_model=list[PatientListItem])
async def list_patients(
    search: str | None = Query(default=None, max_length=100),
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
) -> list[PatientListItem]:
    rows = await PatientService(session=session).list_patients(viewer=viewer, search=search)
    return [
        PatientListItem(
            patient=PatientOut.model_validate(row.patient),
            last_transaction=(
                transaction_out(row.last_transaction) if row.last_transaction is not None else None
            ),
        )
        for row in rows
    ]


@router.post("", response_model=PatientOut, status_code=HTTP_201_CREATED)
async def create_patient(
    body: PatientCreateRequest,
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
) -> PatientOut:
    with service_errors():
        patient = await PatientService(session=session).create_patient(
            viewer=viewer, fields=body.model_dump(exclude_none=True)
        )
    return PatientOut.model_validate(patient)


@router.get("/{patient_id}", response_model=PatientOut)
async def get_patient(
    patient_id: uuid.UUID,
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
) -> PatientOut:
    with service_errors():
        patient = await PatientService(session=session).get_patient(
            viewer=viewer, patient_id=patient_id
        )
    return PatientOut.model_validate(patient)


@router.patch("/{patient_id}", response_model=PatientOut)
async def update_patient(
    patient_id: uuid.UUID,
    body: PatientUpdateRequest,
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
) -> PatientOut:
    # Only fields present in the request body are written; explicit nulls clear a field.
    with service_errors():
        patient = await PatientService(session=session).update_patient(
            viewer=viewer, patient_id=patient_id, fields=body.model_dump(exclude_unset=True)
        )
    return PatientOut.model_validate(patient)


@router.delete("/{patient_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_patient(
    patient_id: uuid.UUID,
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
) -> None:
    with service_errors():
        await PatientService(session=session).delete_patient(viewer=viewer, patient_id=patient_id)
