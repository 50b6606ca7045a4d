"""
clinic_portal.services.dashboard

Role-gated home dashboard.

Responsibilities:
- Admins: clinic-wide counts, the first professionals and pending payments to review.
- Professionals: their own patients and their own pending payments.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.auth.models import Profile, UserRole
from clinic_portal.db.models import Patient, PaymentStatus, ProfileRecord, Transaction
from clinic_portal.db.repositories.patients import PatientRepo
from clinic_portal.db.repositories.profiles import ProfileRepo
from clinic_portal.db.repositories.transactions import TransactionRepo

PREVIEW_SIZE = 5


@dataclass(frozen=True, slots=True)
class AdminDashboard:
    professional_count: int
    patient_count: int
    pending_payment_count: int
    professionals: list[ProfileRecord]
    pending_payments: list[Transaction]


@dataclass(frozen=True, slots=True)
class ProfessionalDashboard:
    patients: list[Patient]
    pending_payments: list[Transaction]


class DashboardService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._profiles = ProfileRepo(session)
        self._patients = PatientRepo(session)
        self._transactions = TransactionRepo(session)

    async def for_viewer(self, viewer: Profile) -> AdminDashboard | ProfessionalDashboard:
        if viewer.is_admin:
            return await self._admin()
        return await self._professional(viewer)

    async def _admin(self) -> AdminDashboard:
        professionals = await self._profiles.list_by_role(UserRole.professional)
        pending = await self._transactions.list(status=PaymentStatus.pending, order="created_at")
        return AdminDashboard(
            professional_count=await self._profiles.count_by_role(UserRole.professional),
            patient_count=await self._patients.count(),
            pending_payment_count=await self._transactions.count(status=PaymentStatus.pending),
            professionals=professionals[:PREVIEW_SIZE],
            pending_payments=pending[:PREVIEW_SIZE],
        )

    async def _professional(self, viewer: Profile) -> ProfessionalDashboard:
        return ProfessionalDashboard(
            patients=await self._patients.list(professional_id=viewer.id),
            pending_payments=await self._transactions.list(
                status=PaymentStatus.pending, professional_id=viewer.id, order="created_at"
            ),
        )
