"""
tests.test_api

HTTP API smoke tests through the app lifespan (ASGITransport, sqlite file DB).

Responsibilities:
- Ensure the app boots, serves health checks and tears the coordinator down.
- Walk the professional and admin flows end to end over HTTP.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import replace
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from clinic_portal.api.app import create_app
from clinic_portal.auth.models import AuthEvent, AuthSession, UserRole
from clinic_portal.backend.hosted_auth import AuthRejectedError
from clinic_portal.db.repositories.profiles import ProfileRepo
from tests.fakes import FakeAuthBackend, FakeStorage, make_session

USERS = {"ana@clinic.test": "u1", "bruno@clinic.test": "u2"}


class PasswordAuth(FakeAuthBackend):
    async def sign_in_with_password(self, *, email: str, password: str) -> AuthSession:
        if password != "secret" or email not in USERS:
            raise AuthRejectedError("Invalid login credentials")
        session = make_session(USERS[email], email=email)
        self.push(AuthEvent.signed_in, session)
        return session


@pytest_asyncio.fixture
async def app(app_settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=app_settings, auth_backend=PasswordAuth(), storage=FakeStorage())
    # httpx ASGITransport does not manage lifespan; drive it explicitly.
    async with app.router.lifespan_context(app):
        async with app.state.sessionmaker() as session:
            profiles = ProfileRepo(session)
            await profiles.create(
                profile_id="u1", role=UserRole.admin, first_name="Ana", last_name="Silva"
            )
            await profiles.create(
                profile_id="u2",
                role=UserRole.professional,
                first_name="Bruno",
                last_name="Costa",
                specialty="Physiotherapy",
            )
            await session.commit()
        yield app
    assert app.state.coordinator.mounted is False


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def _sign_in(client: httpx.AsyncClient, email: str) -> dict:
    r = await client.post("/v1/session/sign-in", json={"email": email, "password": "secret"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["token_type"] == "bearer"
    client.headers["Authorization"] = f"Bearer {body['access_token']}"
    return body


def _second_client(app: FastAPI) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_health_endpoints(client) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json()["status"] == "ready"
    assert "x-request-id" in r.headers

    r = await client.get("/healthz", headers={"x-request-id": "req-42"})
    assert r.headers["x-request-id"] == "req-42"


@pytest.mark.asyncio
async def test_anonymous_session_is_rejected(client) -> None:
    r = await client.get("/v1/session")
    assert r.status_code == 200
    assert r.json()["phase"] == "ANONYMOUS"
    assert r.json()["principal"] is None

    assert (await client.get("/v1/patients")).status_code == 401
    assert (await client.get("/v1/dashboard")).status_code == 401


@pytest.mark.asyncio
async def test_bad_credentials(client) -> None:
    r = await client.post(
        "/v1/session/sign-in", json={"email": "bruno@clinic.test", "password": "nope"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_professional_flow(client, app) -> None:
    body = await _sign_in(client, "bruno@clinic.test")
    assert body["phase"] == "AUTHENTICATED"
    assert body["role"] == "professional"
    assert body["profile"]["first_name"] == "Bruno"

    r = await client.post("/v1/patients", json={"first_name": "Maria", "last_name": "Souza"})
    assert r.status_code == 201, r.text
    patient_id = r.json()["id"]

    r = await client.get("/v1/patients", params={"search": "souza"})
    assert [row["patient"]["id"] for row in r.json()] == [patient_id]

    r = await client.post(
        "/v1/finances/payments",
        data={"patient_id": patient_id, "amount": "75.00", "description": "March"},
        files={"receipt": ("receipt.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert r.status_code == 201, r.text
    payment = r.json()
    assert payment["status"] == "pending"
    assert Decimal(payment["amount"]) == Decimal("75")
    assert payment["receipt_path"] == f"payment_receipts/{payment['id']}.pdf"
    assert payment["patient_name"] == "Maria Souza"

    r = await client.post(
        "/v1/finances/payments",
        data={"patient_id": patient_id, "amount": "10"},
        files={"receipt": ("notes.txt", b"hello", "text/plain")},
    )
    assert r.status_code == 422

    # Finance review is for admins.
    assert (await client.get("/v1/finances/transactions")).status_code == 403

    r = await client.get("/v1/dashboard")
    assert r.json()["view"] == "professional"
    assert len(r.json()["pending_payments"]) == 1

    r = await client.post(
        "/v1/appointments",
        json={
            "patient_id": patient_id,
            "starts_at": "2026-05-04T09:00:00",
            "ends_at": "2026-05-04T09:45:00",
        },
    )
    assert r.status_code == 201, r.text
    r = await client.get("/v1/appointments", params={"day": "2026-05-04"})
    assert [a["patient_name"] for a in r.json()] == ["Maria Souza"]

    r = await client.patch("/v1/professionals/u2", json={"bio": "Sports injuries"})
    assert r.status_code == 200
    assert app.state.coordinator.profile.bio == "Sports injuries"
    assert (await client.patch("/v1/professionals/u1", json={"bio": "x"})).status_code == 403

    r = await client.post("/v1/session/activity", json={"kind": "pointer"})
    assert r.status_code == 204

    r = await client.post("/v1/session/sign-out")
    assert r.json()["phase"] == "ANONYMOUS"
    assert (await client.get("/v1/patients")).status_code == 401


@pytest.mark.asyncio
async def test_admin_finance_review(client) -> None:
    await _sign_in(client, "bruno@clinic.test")
    r = await client.post("/v1/patients", json={"first_name": "Joao", "last_name": "Lima"})
    patient_id = r.json()["id"]
    await client.post(
        "/v1/finances/payments",
        data={"patient_id": patient_id, "amount": "40.50"},
        files={"receipt": ("r.png", b"png", "image/png")},
    )

    body = await _sign_in(client, "ana@clinic.test")
    assert body["role"] == "admin"

    r = await client.get("/v1/finances/transactions", params={"search": "bruno"})
    assert r.status_code == 200
    data = r.json()
    assert len(data["transactions"]) == 1
    assert Decimal(data["totals"]["pending"]) == Decimal("40.50")
    tx_id = data["transactions"][0]["id"]

    r = await client.patch(f"/v1/finances/transactions/{tx_id}", json={"status": "completed"})
    assert r.json()["status"] == "completed"

    r = await client.get("/v1/dashboard")
    assert r.json()["view"] == "admin"
    assert r.json()["professional_count"] == 1
    assert r.json()["pending_payment_count"] == 0

    assert (await client.delete(f"/v1/finances/transactions/{tx_id}")).status_code == 204
    assert (await client.delete(f"/v1/finances/transactions/{tx_id}")).status_code == 404


@pytest.mark.asyncio
async def test_refresh_failure_surfaces_notification(client, app) -> None:
    app.state.auth.get_session_error = ConnectionError("offline")

    r = await client.post("/v1/session/refresh")
    assert r.json()["last_error"] == "connectivity"

    r = await client.get("/v1/session/notifications")
    assert [n["kind"] for n in r.json()] == ["connectivity"]
    assert (await client.get("/v1/session/notifications")).json() == []


@pytest.mark.asyncio
async def test_other_clients_need_the_sign_in_grant(client, app) -> None:
    body = await _sign_in(client, "ana@clinic.test")
    assert body["role"] == "admin"

    async with _second_client(app) as stranger:
        r = await stranger.get("/v1/finances/transactions")
        assert r.status_code == 401
        assert r.headers["www-authenticate"] == "Bearer"
        assert (await stranger.get("/v1/patients")).status_code == 401
        assert (await stranger.get("/v1/dashboard")).status_code == 401
        assert (await stranger.get("/v1/session")).status_code == 401
        assert (await stranger.get("/v1/session/notifications")).status_code == 401
        assert (await stranger.post("/v1/session/sign-out")).status_code == 401
        r = await stranger.post("/v1/session/activity", json={"kind": "key"})
        assert r.status_code == 401

        stranger.headers["Authorization"] = "Bearer not-the-grant"
        assert (await stranger.get("/v1/finances/transactions")).status_code == 401
        # The hosted access token is not a grant either.
        stranger.headers["Authorization"] = "Bearer access-u1"
        assert (await stranger.get("/v1/finances/transactions")).status_code == 401

    assert app.state.coordinator.principal.subject == "u1"
    assert (await client.get("/v1/finances/transactions")).status_code == 200


@pytest.mark.asyncio
async def test_new_sign_in_replaces_previous_grant(client, app) -> None:
    await _sign_in(client, "bruno@clinic.test")
    assert (await client.get("/v1/patients")).status_code == 200

    async with _second_client(app) as other:
        await _sign_in(other, "ana@clinic.test")
        assert (await other.get("/v1/patients")).status_code == 200
        assert (await client.get("/v1/patients")).status_code == 401


@pytest.mark.asyncio
async def test_grant_survives_token_rotation_but_not_subject_change(client, app) -> None:
    await _sign_in(client, "bruno@clinic.test")
    coordinator = app.state.coordinator
    rotated = replace(make_session("u2", email="bruno@clinic.test"), access_token="access-u2-b")

    app.state.auth.push(AuthEvent.token_refreshed, rotated)
    await coordinator.wait_idle()
    assert (await client.get("/v1/patients")).status_code == 200

    # A session that changed hands behind the UI's back does not inherit the grant.
    app.state.auth.push(AuthEvent.signed_in, make_session("u1", email="ana@clinic.test"))
    await coordinator.wait_idle()
    assert coordinator.principal.subject == "u1"
    assert (await client.get("/v1/patients")).status_code == 401
