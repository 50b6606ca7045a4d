"""
clinic_portal.auth.jwt

Session token helpers.

Responsibilities:
- Decode access tokens issued by the hosted auth backend (expiry + subject claims).
- Verify signatures when the backend JWT secret is configured.
- Issue tokens for local/dev scenarios and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    audience: str
    # None disables signature verification (claims are still parsed).
    secret: str | None = None


class JwtValidationError(Exception):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    subject: str,
    email: str | None = None,
    ttl: timedelta = timedelta(hours=1),
) -> str:
    if cfg.secret is None:
        raise ValueError("issuing tokens requires a secret")
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "aud": cfg.audience,
        "sub": subject,
        "email": email,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str) -> dict[str, Any]:
    try:
        if cfg.secret is None:
            # Backend already authenticated the token; we only need its claims.
            return jwt.decode(
                token,
                options={"verify_signature": False, "require": ["exp", "sub"]},
            )
        return jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            audience=cfg.audience,
            options={"require": ["exp", "iat", "sub"]},
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e


def token_expiry(claims: dict[str, Any]) -> datetime:
    return datetime.fromtimestamp(int(claims["exp"]), tz=UTC)


# --- Module Notes -----------------------------------------------------------
# Token decoding is used by `backend.hosted_auth` to derive session expiry;
# issuing is used by tests and local fakes of the hosted backend.
