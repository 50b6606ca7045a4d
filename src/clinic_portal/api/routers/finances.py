"""
clinic_portal.api.routers.finances

Finance review (admins) and payment registration (professionals).

Responsibilities:
- List/search transactions with totals; create, edit and delete them.
- Accept a payment with its receipt as multipart form data.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_204_NO_CONTENT,
    HTTP_502_BAD_GATEWAY,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from clinic_portal.api.deps import db_session, settings_dep, storage_from_app
from clinic_portal.api.errors import service_errors
from clinic_portal.api.schemas import TransactionOut, transaction_out
from clinic_portal.auth.deps import get_profile, require_roles
from clinic_portal.auth.models import Profile, UserRole
from clinic_portal.backend.storage import ReceiptStorage, StorageError
from clinic_portal.db.models import PaymentStatus
from clinic_portal.services.finances import FinanceService, compute_totals
from clinic_portal.settings import Settings

router = APIRouter(prefix="/v1/finances", tags=["finances"])


class TotalsOut(BaseModel):
    total: Decimal
    pending: Decimal
    completed: Decimal


class TransactionListResponse(BaseModel):
    transactions: list[TransactionOut]
    totals: TotalsOut


class TransactionCreateRequest(BaseModel):
    patient_id: uuid.UUID
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    payment_date: date
    description: str | None = Field(default=None, max_length=2000)
    status: PaymentStatus = PaymentStatus.pending


class TransactionUpdateRequest(BaseModel):
    patient_id: uuid.UUID | None = None
    amount: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    payment_date: date | None = None
    description: str | None = Field(default=None, max_length=2000)
    status: PaymentStatus | None = None


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
)
async def list_transactions(
    search: str | None = Query(default=None, max_length=100),
    viewer: Profile = Depends(require_roles(UserRole.admin)),
    session: AsyncSession = Depends(db_session),
) -> TransactionListResponse:
    with service_errors():
        txs = await FinanceService(session=session).list_transactions(viewer=viewer, search=search)
    totals = compute_totals(txs)
    return TransactionListResponse(
        transactions=[transaction_out(tx) for tx in txs],
        totals=TotalsOut(total=totals.total, pending=totals.pending, completed=totals.completed),
    )


@router.post("/transactions", response_model=TransactionOut, status_code=HTTP_201_CREATED)
async def create_transaction(
    body: TransactionCreateRequest,
    viewer: Profile = Depends(require_roles(UserRole.admin)),
    session: AsyncSession = Depends(db_session),
) -> TransactionOut:
    with service_errors():
        tx = await FinanceService(session=session).create_transaction(
            viewer=viewer,
            patient_id=body.patient_id,
            amount=body.amount,
            payment_date=body.payment_date,
            description=body.description,
            status=body.status,
        )
    return transaction_out(tx)


@router.patch("/transactions/{transaction_id}", response_model=TransactionOut)
async def update_transaction(
    transaction_id: uuid.UUID,
    body: TransactionUpdateRequest,
    viewer: Profile = Depends(require_roles(UserRole.admin)),
    session: AsyncSession = Depends(db_session),
) -> TransactionOut:
    with service_errors():
        tx = await FinanceService(session=session).update_transaction(
            viewer=viewer,
            transaction_id=transaction_id,
            fields=body.model_dump(exclude_unset=True),
        )
    return transaction_out(tx)


@router.delete("/transactions/{transaction_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: uuid.UUID,
    viewer: Profile = Depends(require_roles(UserRole.admin)),
    session: AsyncSession = Depends(db_session),
) -> None:
    with service_errors():
        await FinanceService(session=session).delete_transaction(
            viewer=viewer, transaction_id=transaction_id
        )


@router.post("/payments", response_model=TransactionOut, status_code=HTTP_201_CREATED)
async def register_payment(
    patient_id: uuid.UUID = Form(...),
    amount: Decimal = Form(...),
    description: str | None = Form(default=None),
    receipt: UploadFile = File(...),
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    storage: ReceiptStorage | None = Depends(storage_from_app),
) -> TransactionOut:
    if storage is None:
        raise HTTPException(
            status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="Receipt storage unavailable"
        )
    content = await receipt.read()
    svc = FinanceService(session=session, storage=storage, receipts_bucket=settings.receipts_bucket)
    try:
        with service_errors():
            tx = await svc.register_payment(
                viewer=viewer,
                patient_id=patient_id,
                amount=amount,
                receipt_filename=receipt.filename or "",
                receipt_content=content,
                receipt_content_type=receipt.content_type or "",
                description=description,
            )
    except StorageError as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail="Receipt upload failed") from e
    return transaction_out(tx)


# --- Module Notes -----------------------------------------------------------
# Professionals register payments; only admins review, edit or delete them.
