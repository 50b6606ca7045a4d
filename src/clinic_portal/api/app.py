"""
clinic_portal.api.app

FastAPI app factory for the clinic portal.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Own shared infrastructure for the app lifetime: DB engine, backend HTTP client,
  auth/storage adapters and the single SessionCoordinator.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from clinic_portal import __version__
from clinic_portal.api.routers.appointments import router as appointments_router
from clinic_portal.api.routers.dashboard import router as dashboard_router
from clinic_portal.api.routers.finances import router as finances_router
from clinic_portal.api.routers.health import router as health_router
from clinic_portal.api.routers.patients import router as patients_router
from clinic_portal.api.routers.professionals import router as professionals_router
from clinic_portal.api.routers.session import router as session_router
from clinic_portal.backend.hosted_auth import HostedAuthClient
from clinic_portal.backend.profile_store import SqlProfileStore
from clinic_portal.backend.storage import ReceiptStorage, StorageClient
from clinic_portal.db.init_db import init_db
from clinic_portal.db.session import create_engine, create_sessionmaker
from clinic_portal.observability.logging import configure_logging, get_logger
from clinic_portal.observability.middleware import RequestContextMiddleware
from clinic_portal.session.coordinator import SessionCoordinator
from clinic_portal.session.notifications import NotificationCenter
from clinic_portal.session.ports import AuthBackend
from clinic_portal.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    auth_backend: AuthBackend | None = None,
    storage: ReceiptStorage | None = None,
) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, json_logs=settings.log_json
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        # Routers obtain sessions via dependencies (see `clinic_portal.api.deps`).
        engine = create_engine(settings)
        app.state.settings = settings
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)

        http = httpx.AsyncClient(
            base_url=settings.backend_url, timeout=settings.backend_timeout_seconds
        )
        auth = auth_backend
        if auth is None:
            auth = HostedAuthClient(settings=settings, http=http)
        app.state.auth = auth
        if storage is not None:
            app.state.storage = storage
        else:
            token_provider = getattr(auth, "access_token", None)
            app.state.storage = StorageClient(
                settings=settings, http=http, token_provider=token_provider
            )

        coordinator = SessionCoordinator.from_settings(
            settings,
            auth=auth,
            profiles=SqlProfileStore(app.state.sessionmaker),
            notifications=NotificationCenter(),
        )
        app.state.coordinator = coordinator
        # Bearer grant of the UI that signed in through `POST /v1/session/sign-in`.
        app.state.client_grant = None
        await coordinator.initialize()
        try:
            yield
        finally:
            await coordinator.close()
            await http.aclose()
            # Dispose the engine to close pools/FDs gracefully.
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Clinic Portal",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(session_router)
    app.include_router(dashboard_router)
    app.include_router(patients_router)
    app.include_router(professionals_router)
    app.include_router(finances_router)
    app.include_router(appointments_router)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; business logic stays in services and the session
# coordinator.
