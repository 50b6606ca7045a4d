"""
clinic_portal.backend.hosted_auth

HTTP client for the hosted auth service (GoTrue-compatible routes).

Responsibilities:
- Password sign-in, token refresh, user reload and sign-out over httpx.
- Keep the current session in memory and refresh it shortly before it expires.
- Fan out auth-state events (SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, USER_UPDATED)
  to local subscribers, the way the hosted backend's browser client does.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

import httpx

from clinic_portal.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate, token_expiry
from clinic_portal.auth.models import AuthEvent, AuthSession, Principal
from clinic_portal.observability.logging import get_logger
from clinic_portal.session.errors import ConnectivityError
from clinic_portal.session.ports import AuthStateHandler
from clinic_portal.settings import Settings

log = get_logger(__name__)


class AuthRejectedError(Exception):
    """The auth service answered but refused the request (bad credentials, revoked token)."""


class _ListenerSubscription:
    def __init__(self, client: HostedAuthClient, listener_id: int) -> None:
        self._client = client
        self._listener_id = listener_id

    def unsubscribe(self) -> None:
        self._client._listeners.pop(self._listener_id, None)


class HostedAuthClient:
    def __init__(self, *, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http
        self._jwt = JwtConfig(
            alg=settings.jwt_alg,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
        )
        self._margin = timedelta(seconds=settings.session_expiry_margin_seconds)
        self._session: AuthSession | None = None
        self._listeners: dict[int, AuthStateHandler] = {}
        self._next_listener_id = 0

    @property
    def current_session(self) -> AuthSession | None:
        return self._session

    def access_token(self) -> str | None:
        return self._session.access_token if self._session is not None else None

    # --- AuthBackend contract -------------------------------------------------

    async def get_session(self) -> AuthSession | None:
        session = self._session
        if session is None:
            return None
        if not session.expires_within(self._margin):
            return session

        try:
            payload = await self._token_request(
                "refresh_token", {"refresh_token": session.refresh_token}
            )
            refreshed = self._session_from_payload(payload)
        except AuthRejectedError as e:
            # Refresh token revoked or expired: the session is gone for good.
            log.info("auth_refresh_rejected", principal_id=session.principal.subject, error=str(e))
            if self._session is session:
                self._session = None
                self._emit(AuthEvent.signed_out, None)
            return None

        self._session = refreshed
        log.info("auth_token_refreshed", principal_id=refreshed.principal.subject)
        self._emit(AuthEvent.token_refreshed, refreshed)
        return refreshed

    def on_auth_state_change(self, handler: AuthStateHandler) -> _ListenerSubscription:
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        self._listeners[listener_id] = handler
        return _ListenerSubscription(self, listener_id)

    async def sign_out(self) -> None:
        session = self._session
        if session is None:
            return
        # Local session goes first; the remote revocation is best-effort for the caller.
        self._session = None
        self._emit(AuthEvent.signed_out, None)

        try:
            r = await self._http.post("/auth/v1/logout", headers=self._headers(session.access_token))
        except httpx.HTTPError as e:
            raise ConnectivityError(f"sign-out request failed: {e}") from e
        if r.status_code >= 500:
            raise ConnectivityError(f"sign-out failed with status {r.status_code}")
        # 401/404 mean the token is already unknown remotely, which is the goal.
        log.info("auth_signed_out", principal_id=session.principal.subject, status=r.status_code)

    # --- extra operations -----------------------------------------------------

    async def sign_in_with_password(self, *, email: str, password: str) -> AuthSession:
        payload = await self._token_request("password", {"email": email, "password": password})
        session = self._session_from_payload(payload)
        self._session = session
        log.info("auth_signed_in", principal_id=session.principal.subject)
        self._emit(AuthEvent.signed_in, session)
        return session

    async def reload_user(self) -> AuthSession | None:
        session = self._session
        if session is None:
            return None
        try:
            r = await self._http.get("/auth/v1/user", headers=self._headers(session.access_token))
        except httpx.HTTPError as e:
            raise ConnectivityError(f"user request failed: {e}") from e
        if r.status_code >= 500:
            raise ConnectivityError(f"user request failed with status {r.status_code}")
        if r.status_code >= 400:
            raise AuthRejectedError(_error_message(r))

        updated = replace(session, principal=_principal_from_user(r.json(), session.principal.subject))
        if self._session is not session:
            return self._session
        self._session = updated
        self._emit(AuthEvent.user_updated, updated)
        return updated

    # --- internals ------------------------------------------------------------

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self._settings.backend_anon_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _token_request(self, grant_type: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            r = await self._http.post(
                "/auth/v1/token",
                params={"grant_type": grant_type},
                json=body,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise ConnectivityError(f"token request failed: {e}") from e
        if r.status_code >= 500:
            raise ConnectivityError(f"token request failed with status {r.status_code}")
        if r.status_code >= 400:
            raise AuthRejectedError(_error_message(r))
        return r.json()

    def _session_from_payload(self, payload: dict[str, Any]) -> AuthSession:
        access_token = str(payload.get("access_token") or "")
        refresh_token = str(payload.get("refresh_token") or "")
        if not access_token or not refresh_token:
            raise AuthRejectedError("token response is missing tokens")
        try:
            claims = decode_and_validate(cfg=self._jwt, token=access_token)
        except JwtValidationError as e:
            raise AuthRejectedError(f"invalid access token: {e}") from e

        user = payload.get("user") or {}
        return AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=token_expiry(claims),
            principal=_principal_from_user(user, str(claims["sub"])),
            token_type=str(payload.get("token_type") or "bearer"),
        )

    def _emit(self, event: AuthEvent, session: AuthSession | None) -> None:
        for handler in list(self._listeners.values()):
            try:
                handler(event, session)
            except Exception:
                # One broken subscriber must not keep the others from hearing the event.
                log.exception("auth_listener_failed", auth_event=str(event))


def _principal_from_user(user: dict[str, Any], fallback_subject: str) -> Principal:
    app_metadata = user.get("app_metadata") or {}
    return Principal(
        subject=str(user.get("id") or fallback_subject),
        email=user.get("email"),
        provider=app_metadata.get("provider"),
        last_sign_in_at=_parse_timestamp(user.get("last_sign_in_at")),
    )


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return f"status {r.status_code}"
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return f"status {r.status_code}"


# --- Module Notes -----------------------------------------------------------
# The client lives as long as the app; `api.app` builds it around a shared
# httpx.AsyncClient whose base_url is `Settings.backend_url`.
