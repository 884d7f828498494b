"""
Admin authentication: password hashing, signed tokens, tenant-scoped authorization.
"""
from .guard import AuthorizationGuard
from .passwords import PasswordHasher
from .service import AdminAuthService
from .tokens import TokenClaims, TokenService

__all__ = [
    "PasswordHasher",
    "TokenService",
    "TokenClaims",
    "AuthorizationGuard",
    "AdminAuthService",
]
