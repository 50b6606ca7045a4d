"""
clinic_portal.api.schemas

Response models shared by several routers.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from clinic_portal.auth.models import UserRole
from clinic_portal.db.models import PaymentStatus, Transaction
from clinic_portal.services.filters import full_name


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    role: UserRole
    first_name: str | None = None
    last_name: str | None = None
    specialty: str | None = None
    bio: str | None = None
    phone: str | None = None
    email: str | None = None


class PatientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    professional_id: str
    first_name: str
    last_name: str
    date_of_birth: date | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    diagnosis: str | None = None
    notes: str | None = None
    created_at: datetime


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    professional_id: str
    amount: Decimal
    description: str | None = None
    status: PaymentStatus
    payment_date: date
    receipt_path: str | None = None
    created_at: datetime
    patient_name: str | None = None
    professional_name: str | None = None


def transaction_out(tx: Transaction) -> TransactionOut:
    out = TransactionOut.model_validate(tx)
    # Relationships are eager-loaded by TransactionRepo reads.
    if tx.patient is not None:
        out.patient_name = full_name(tx.patient.first_name, tx.patient.last_name)
    if tx.professional is not None:
        out.professional_name = full_name(tx.professional.first_name, tx.professional.last_name)
    return out
