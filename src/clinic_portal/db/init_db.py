"""
clinic_portal.db.init_db

DB initialization helpers (dev/test convenience).

Responsibilities:
- Create the clinic tables for local development and tests.
- Keep production migration workflow separate (Alembic).
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from clinic_portal.db import models  # noqa: F401  # register tables on Base.metadata
from clinic_portal.db.base import Base
from clinic_portal.observability.logging import get_logger

log = get_logger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    """
    Dev/test bootstrap: create tables if they don't exist.
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    # `render_as_string` masks the password by default.
    log.info(
        "db_tables_ready",
        tables=sorted(Base.metadata.tables),
        url=engine.url.render_as_string(),
    )
