"""
Wiring of the tenancy core over one document store, and the operations it offers the request layer:
create / get / rename / update credentials / delete (token-guarded) / issue token.
"""
from __future__ import annotations

import threading
from typing import Optional

from .auth import AdminAuthService, AuthorizationGuard, PasswordHasher, TokenService
from .config import Settings, get_settings
from .storage import create_document_store
from .tenant import (
    IdentityStore,
    PartitionProvisioner,
    ReconcileReport,
    TenantLifecycleManager,
    TenantMetadata,
    TenantRegistry,
)


class TenantPlatform:
    def __init__(self, settings: Settings, store, hasher: Optional[PasswordHasher] = None) -> None:
        self.settings = settings
        self.store = store
        self.hasher = hasher or PasswordHasher()
        self.identity = IdentityStore(store)
        self.registry = TenantRegistry(store)
        self.partitions = PartitionProvisioner(store, copy_batch_size=settings.copy_batch_size)
        self.lifecycle = TenantLifecycleManager(self.identity, self.registry, self.partitions, self.hasher)
        self.tokens = TokenService(settings.jwt_secret, settings.token_lifetime_sec)
        self.guard = AuthorizationGuard(self.tokens, self.identity)
        self.auth = AdminAuthService(self.identity, self.hasher, self.tokens)

    def create_tenant(self, name: str, email: str, password: str) -> TenantMetadata:
        return self.lifecycle.create(name, email, password)

    def get_tenant(self, name: str) -> Optional[TenantMetadata]:
        return self.lifecycle.get(name)

    def rename_tenant(self, current_name: str, new_name: str,
                      email: Optional[str] = None, password: Optional[str] = None) -> TenantMetadata:
        """With email + password, the admin credentials change in the same checked operation."""
        if email is None and password is None:
            return self.lifecycle.rename(current_name, new_name)
        return self.lifecycle.rename_with_credentials(current_name, new_name, email, password)

    def update_tenant_credentials(self, name: str, email: str, password: str) -> TenantMetadata:
        return self.lifecycle.update_credentials(name, email, password)

    def delete_tenant(self, name: str, token: str) -> str:
        """Only guarded operation. Returns the id of the administrator who deleted the tenant."""
        admin_id = self.guard.authorize(token, name)
        self.lifecycle.delete(name)
        return admin_id

    def issue_token(self, email: str, password: str) -> str:
        return self.auth.login(email, password)

    def reconcile(self, repair: bool = False) -> ReconcileReport:
        return self.lifecycle.reconcile(repair=repair)


def build_platform(settings: Optional[Settings] = None, store=None,
                   hasher: Optional[PasswordHasher] = None) -> TenantPlatform:
    settings = settings or get_settings()
    if store is None:
        store = create_document_store(settings)
    return TenantPlatform(settings, store, hasher=hasher)


_platform: Optional[TenantPlatform] = None
_platform_lock = threading.Lock()


def get_platform() -> TenantPlatform:
    global _platform
    if _platform is not None:
        return _platform
    with _platform_lock:
        if _platform is not None:
            return _platform
        _platform = build_platform()
        return _platform
