"""
clinic_portal.api.routers.dashboard

Role-specific landing page data.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.api.deps import db_session
from clinic_portal.api.schemas import PatientOut, ProfileOut, TransactionOut, transaction_out
from clinic_portal.auth.deps import get_profile
from clinic_portal.auth.models import Profile
from clinic_portal.services.dashboard import AdminDashboard, DashboardService

router = APIRouter(prefix="/v1/dashboard", tags=["dashboard"])


class AdminDashboardResponse(BaseModel):
    view: Literal["admin"] = "admin"
    professional_count: int
    patient_count: int
    pending_payment_count: int
    professionals: list[ProfileOut]
    pending_payments: list[TransactionOut]


class ProfessionalDashboardResponse(BaseModel):
    view: Literal["professional"] = "professional"
    patients: list[PatientOut]
    pending_payments: list[TransactionOut]


@router.get("", response_model=AdminDashboardResponse | ProfessionalDashboardResponse)
async def get_dashboard(
    viewer: Profile = Depends(get_profile),
    session: AsyncSession = Depends(db_session),
) -> AdminDashboardResponse | ProfessionalDashboardResponse:
    data = await DashboardService(session=session).for_viewer(viewer)
    if isinstance(data, AdminDashboard):
        return AdminDashboardResponse(
            professional_count=data.professional_count,
            patient_count=data.patient_count,
            pending_payment_count=data.pending_payment_count,
            professionals=[ProfileOut.model_validate(p) for p in data.professionals],
            pending_payments=[transaction_out(tx) for tx in data.pending_payments],
        )
    return ProfessionalDashboardResponse(
        patients=[PatientOut.model_validate(p) for p in data.patients],
        pending_payments=[transaction_out(tx) for tx in data.pending_payments],
    )
