"""
Signed, self-contained admin tokens (JWT, HS256).
Claims: sub = administrator id, tenant = tenant name, iat, exp.
Nothing is stored server-side; validity is purely temporal and there is no revocation.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from ..errors import TokenInvalidError

ALGORITHM = "HS256"
TENANT_CLAIM = "tenant"
DEFAULT_LIFETIME_SEC = 3600


@dataclass(frozen=True)
class TokenClaims:
    admin_id: str
    tenant_name: str
    issued_at: int
    expires_at: int


class TokenService:
    def __init__(self, secret: bytes, lifetime_sec: int = DEFAULT_LIFETIME_SEC) -> None:
        if not secret:
            raise ValueError("signing key required")
        self._secret = secret
        self._lifetime = lifetime_sec

    @property
    def lifetime_sec(self) -> int:
        return self._lifetime

    def issue(self, admin_id: str, tenant_name: str, now: Optional[int] = None) -> str:
        iat = int(time.time()) if now is None else int(now)
        payload = {
            "sub": str(admin_id),
            TENANT_CLAIM: tenant_name,
            "iat": iat,
            "exp": iat + self._lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def validate(self, token: str) -> TokenClaims:
        """Bad signature, bad structure, missing claims and expiry all raise TokenInvalidError."""
        if not token or not isinstance(token, str):
            raise TokenInvalidError("invalid token: empty")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "iat", "exp", TENANT_CLAIM]},
            )
        except ExpiredSignatureError as e:
            raise TokenInvalidError("invalid token: expired", str(e)) from e
        except InvalidTokenError as e:
            raise TokenInvalidError(f"invalid token: {e}") from e
        tenant = payload.get(TENANT_CLAIM)
        if not isinstance(tenant, str):
            raise TokenInvalidError("invalid token: tenant claim is not a string")
        return TokenClaims(
            admin_id=str(payload["sub"]),
            tenant_name=tenant,
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
        )
