"""
Identity store: administrator records in master_admins.
Email uniqueness is not enforced here; the lifecycle manager checks before insert.
"""
from __future__ import annotations

from typing import List, Optional

from ..storage import new_id
from .models import Administrator, utc_ts

ADMINS_COLLECTION = "master_admins"


class IdentityStore:
    def __init__(self, store) -> None:
        self._store = store

    def get(self, admin_id: str) -> Optional[Administrator]:
        if not admin_id:
            return None
        doc = self._store.find_one(ADMINS_COLLECTION, {"_id": admin_id})
        return Administrator.from_doc(doc) if doc else None

    def find_by_email(self, email: str) -> Optional[Administrator]:
        doc = self._store.find_one(ADMINS_COLLECTION, {"email": email})
        return Administrator.from_doc(doc) if doc else None

    def find_by_tenant(self, tenant_name: str) -> List[Administrator]:
        return [Administrator.from_doc(d) for d in self._store.find(ADMINS_COLLECTION, {"tenantName": tenant_name})]

    def list_admins(self) -> List[Administrator]:
        return [Administrator.from_doc(d) for d in self._store.find(ADMINS_COLLECTION)]

    def create(self, email: str, password_hash: str, tenant_name: str) -> Administrator:
        admin = Administrator(id=new_id(), email=email, password_hash=password_hash, tenant_name=tenant_name)
        self._store.insert_one(ADMINS_COLLECTION, admin.to_doc())
        return admin

    def save(self, admin: Administrator) -> Administrator:
        admin.updated_at = utc_ts()
        if not self._store.replace_one(ADMINS_COLLECTION, admin.to_doc()):
            self._store.insert_one(ADMINS_COLLECTION, admin.to_doc())
        return admin

    def delete(self, admin_id: str) -> bool:
        return self._store.delete_one(ADMINS_COLLECTION, admin_id)
