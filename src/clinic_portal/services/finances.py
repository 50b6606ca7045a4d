"""
clinic_portal.services.finances

Payments and finance review.

Responsibilities:
- Admin finance view: list/search transactions, compute totals, create/edit/delete.
- Professional payment registration: pending transaction plus uploaded receipt.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import PurePath
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.auth.models import Profile
from clinic_portal.backend.storage import ReceiptStorage, StorageError
from clinic_portal.db.models import PaymentStatus, Transaction
from clinic_portal.db.repositories.patients import PatientRepo
from clinic_portal.db.repositories.transactions import TransactionRepo
from clinic_portal.observability.logging import get_logger
from clinic_portal.services.filters import full_name, matches
from clinic_portal.services.patients import load_visible_patient

log = get_logger(__name__)

RECEIPT_CONTENT_TYPES = frozenset({"application/pdf", "image/jpeg", "image/png", "image/webp"})


@dataclass(frozen=True, slots=True)
class FinanceTotals:
    total: Decimal
    pending: Decimal
    completed: Decimal


def compute_totals(transactions: Iterable[Transaction]) -> FinanceTotals:
    total = pending = completed = Decimal("0")
    for tx in transactions:
        total += tx.amount
        if tx.status == PaymentStatus.pending:
            pending += tx.amount
        elif tx.status == PaymentStatus.completed:
            completed += tx.amount
    return FinanceTotals(total=total, pending=pending, completed=completed)


def transaction_matches(tx: Transaction, search: str | None) -> bool:
    patient = tx.patient
    professional = tx.professional
    return matches(
        search,
        patient.first_name if patient else None,
        patient.last_name if patient else None,
        tx.description,
        full_name(professional.first_name, professional.last_name) if professional else None,
    )


class FinanceService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        storage: ReceiptStorage | None = None,
        receipts_bucket: str = "payment_receipts",
    ) -> None:
        self._session = session
        self._storage = storage
        self._bucket = receipts_bucket
        self._transactions = TransactionRepo(session)
        self._patients = PatientRepo(session)

    async def list_transactions(
        self, *, viewer: Profile, search: str | None = None
    ) -> list[Transaction]:
        _require_admin(viewer)
        return [tx for tx in await self._transactions.list() if transaction_matches(tx, search)]

    async def create_transaction(
        self,
        *,
        viewer: Profile,
        patient_id: uuid.UUID,
        amount: Decimal,
        payment_date: date,
        description: str | None = None,
        status: PaymentStatus = PaymentStatus.pending,
    ) -> Transaction:
        _require_admin(viewer)
        _require_positive(amount)
        patient = await self._patients.get(patient_id)
        if patient is None:
            raise LookupError("patient not found")
        tx = await self._transactions.create(
            patient_id=patient_id,
            # Payments belong to the professional treating the patient.
            professional_id=patient.professional_id,
            amount=amount,
            payment_date=payment_date,
            description=description,
            status=status,
        )
        await self._session.commit()
        log.info("transaction_created", transaction_id=str(tx.id), amount=str(amount))
        return await self._reload(tx.id)

    async def update_transaction(
        self, *, viewer: Profile, transaction_id: uuid.UUID, fields: dict[str, Any]
    ) -> Transaction:
        _require_admin(viewer)
        if "amount" in fields:
            _require_positive(fields["amount"])
        if "patient_id" in fields and await self._patients.get(fields["patient_id"]) is None:
            raise LookupError("patient not found")
        tx = await self._transactions.update(transaction_id, **fields)
        if tx is None:
            raise LookupError("transaction not found")
        await self._session.commit()
        log.info("transaction_updated", transaction_id=str(transaction_id), fields=sorted(fields))
        return await self._reload(transaction_id)

    async def delete_transaction(self, *, viewer: Profile, transaction_id: uuid.UUID) -> None:
        _require_admin(viewer)
        if not await self._transactions.delete(transaction_id):
            raise LookupError("transaction not found")
        await self._session.commit()
        log.info("transaction_deleted", transaction_id=str(transaction_id))

    async def register_payment(
        self,
        *,
        viewer: Profile,
        patient_id: uuid.UUID,
        amount: Decimal,
        receipt_filename: str,
        receipt_content: bytes,
        receipt_content_type: str,
        description: str | None = None,
    ) -> Transaction:
        """
        Record a pending payment and upload its receipt as `<transaction id>.<ext>`.

        Both an amount and a receipt are required. If the upload fails the payment row
        is rolled back so no transaction exists without its receipt.
        """

        _require_positive(amount)
        if not receipt_filename or not receipt_content:
            raise ValueError("a payment receipt is required")
        if receipt_content_type not in RECEIPT_CONTENT_TYPES:
            raise ValueError("receipts must be an image or a PDF")
        if self._storage is None:
            raise RuntimeError("receipt storage is not configured")
        await load_visible_patient(self._patients, viewer, patient_id)

        tx = await self._transactions.create(
            patient_id=patient_id,
            professional_id=viewer.id,
            amount=amount,
            payment_date=date.today(),
            description=description,
            status=PaymentStatus.pending,
        )
        path = f"{tx.id}{PurePath(receipt_filename).suffix.lower()}"
        try:
            key = await self._storage.upload(
                bucket=self._bucket,
                path=path,
                content=receipt_content,
                content_type=receipt_content_type,
            )
        except StorageError:
            await self._session.rollback()
            log.warning("payment_receipt_upload_failed", patient_id=str(patient_id), path=path)
            raise

        tx.receipt_path = key
        await self._session.commit()
        log.info(
            "payment_registered",
            transaction_id=str(tx.id),
            patient_id=str(patient_id),
            professional_id=viewer.id,
        )
        return await self._reload(tx.id)

    async def _reload(self, transaction_id: uuid.UUID) -> Transaction:
        tx = await self._transactions.get(transaction_id)
        if tx is None:
            raise LookupError("transaction not found")
        return tx


def _require_admin(viewer: Profile) -> None:
    if not viewer.is_admin:
        raise PermissionError("only administrators can manage finances")


def _require_positive(amount: Any) -> None:
    if Decimal(amount) <= 0:
        raise ValueError("amount must be greater than zero")
