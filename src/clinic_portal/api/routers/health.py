"""
clinic_portal.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness check (`/healthz`).
- Provide readiness check (`/readyz`) with DB connectivity and session state.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.api.deps import db_session
from clinic_portal.auth.deps import coordinator_from_app
from clinic_portal.session.coordinator import SessionCoordinator

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    session: AsyncSession = Depends(db_session),
    coordinator: SessionCoordinator = Depends(coordinator_from_app),
) -> dict[str, str]:
    # Readiness: the profile DB is reachable and the session coordinator is running.
    await session.execute(text("SELECT 1"))
    return {"status": "ready", "session": coordinator.phase.value}
