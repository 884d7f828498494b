"""
Admin login: email + password -> token bound to the administrator's current tenant.
"""
from __future__ import annotations

import logging

from ..errors import InvalidCredentialsError
from ..tenant.identity import IdentityStore
from .tokens import TokenService

logger = logging.getLogger("tenancy.auth")


class AdminAuthService:
    def __init__(self, identity: IdentityStore, hasher, tokens: TokenService) -> None:
        self._identity = identity
        self._hasher = hasher
        self._tokens = tokens

    def login(self, email: str, password: str) -> str:
        email = (email or "").strip()
        admin = self._identity.find_by_email(email) if email else None
        # same error for unknown email and wrong password
        if admin is None or not self._hasher.verify(password or "", admin.password_hash):
            logger.info("login rejected for %r", email)
            raise InvalidCredentialsError("invalid credentials")
        return self._tokens.issue(admin.id, admin.tenant_name)
