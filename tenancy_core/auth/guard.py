"""
Tenant-scoped authorization for guarded operations.
A token is accepted for a tenant only if its claim names that tenant AND the administrator it
names still exists and still belongs to that tenant. The second check is what rejects tokens
issued before a rename; they are refused at once rather than at expiry.
"""
from __future__ import annotations

import logging

from ..errors import ForbiddenError
from ..tenant.identity import IdentityStore
from .tokens import TokenService

logger = logging.getLogger("tenancy.auth")


class AuthorizationGuard:
    def __init__(self, tokens: TokenService, identity: IdentityStore) -> None:
        self._tokens = tokens
        self._identity = identity

    def authorize(self, token: str, claimed_tenant: str) -> str:
        """Return the administrator id, or raise TokenInvalidError / ForbiddenError."""
        claims = self._tokens.validate(token)
        if claims.tenant_name != claimed_tenant:
            logger.warning("token for tenant %r presented for %r", claims.tenant_name, claimed_tenant)
            raise ForbiddenError("token does not belong to this organization")
        admin = self._identity.get(claims.admin_id)
        if admin is None or admin.tenant_name != claimed_tenant:
            logger.warning("admin %s no longer bound to tenant %r", claims.admin_id, claimed_tenant)
            raise ForbiddenError("invalid admin")
        return admin.id
