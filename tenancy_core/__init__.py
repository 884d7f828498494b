"""
Tenant lifecycle and admin token authorization over a shared document store.
Each tenant gets its own org_* partition; registry records (admins, tenant metadata)
live in master collections; admin tokens are bound to exactly one tenant.
"""
from .core import TenantPlatform, build_platform, get_platform
from .errors import (
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    StorageError,
    TenancyError,
    TokenInvalidError,
    ValidationError,
)

__all__ = [
    "TenantPlatform",
    "build_platform",
    "get_platform",
    "TenancyError",
    "ValidationError",
    "InvalidCredentialsError",
    "TokenInvalidError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "StorageError",
]
