"""
clinic_portal.db.repositories.transactions

Repository for `Transaction` entities.

Responsibilities:
- Create/update/delete payments.
- Query payments with their patient and professional eagerly loaded (async sessions
  cannot lazy-load).
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clinic_portal.db.models import PaymentStatus, Transaction, utcnow

TRANSACTION_FIELDS = frozenset(
    {"patient_id", "amount", "description", "status", "payment_date", "receipt_path"}
)


class TransactionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        patient_id: uuid.UUID,
        professional_id: str,
        amount: Decimal,
        payment_date: date,
        description: str | None = None,
        status: PaymentStatus = PaymentStatus.pending,
    ) -> Transaction:
        tx = Transaction(
            patient_id=patient_id,
            professional_id=professional_id,
            amount=amount,
            payment_date=payment_date,
            description=description,
            status=status,
        )
        self._session.add(tx)
        await self._session.flush()
        return tx

    async def get(self, transaction_id: uuid.UUID) -> Transaction | None:
        stmt = (
            select(Transaction)
            .where(Transaction.id == transaction_id)
            .options(selectinload(Transaction.patient), selectinload(Transaction.professional))
            .execution_options(populate_existing=True)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list(
        self,
        *,
        status: PaymentStatus | None = None,
        professional_id: str | None = None,
        order: str = "payment_date",
    ) -> list[Transaction]:
        stmt = select(Transaction).options(
            selectinload(Transaction.patient), selectinload(Transaction.professional)
        )
        if status is not None:
            stmt = stmt.where(Transaction.status == status)
        if professional_id is not None:
            stmt = stmt.where(Transaction.professional_id == professional_id)
        if order == "created_at":
            stmt = stmt.order_by(desc(Transaction.created_at), desc(Transaction.id))
        else:
            stmt = stmt.order_by(desc(Transaction.payment_date), desc(Transaction.created_at))
        return list((await self._session.execute(stmt)).scalars().all())

    async def count(self, *, status: PaymentStatus | None = None) -> int:
        stmt = select(func.count()).select_from(Transaction)
        if status is not None:
            stmt = stmt.where(Transaction.status == status)
        return int((await self._session.execute(stmt)).scalar_one())

    async def latest_for_patients(
        self, patient_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, Transaction]:
        ids = list(patient_ids)
        if not ids:
            return {}
        stmt = (
            select(Transaction)
            .where(Transaction.patient_id.in_(ids))
            .options(selectinload(Transaction.patient), selectinload(Transaction.professional))
            .order_by(desc(Transaction.created_at), desc(Transaction.id))
        )
        latest: dict[uuid.UUID, Transaction] = {}
        for tx in (await self._session.execute(stmt)).scalars():
            latest.setdefault(tx.patient_id, tx)
        return latest

    async def update(self, transaction_id: uuid.UUID, **fields: Any) -> Transaction | None:
        tx = await self._session.get(Transaction, transaction_id)
        if tx is None:
            return None
        for key, value in fields.items():
            if key not in TRANSACTION_FIELDS:
                raise ValueError(f"field not editable: {key}")
            setattr(tx, key, value)
        tx.updated_at = utcnow()
        await self._session.flush()
        return tx

    async def delete(self, transaction_id: uuid.UUID) -> bool:
        result = await self._session.execute(
            delete(Transaction).where(Transaction.id == transaction_id)
        )
        return bool(result.rowcount)
