"""
Tenant registry: one metadata record per tenant name in master_tenants.
Only the lifecycle manager writes here.
"""
from __future__ import annotations

from typing import List, Optional

from ..storage import new_id
from .models import DEFAULT_CONNECTION, TenantMetadata

TENANTS_COLLECTION = "master_tenants"


class TenantRegistry:
    def __init__(self, store) -> None:
        self._store = store

    def get_by_name(self, tenant_name: str) -> Optional[TenantMetadata]:
        doc = self._store.find_one(TENANTS_COLLECTION, {"tenantName": tenant_name})
        return TenantMetadata.from_doc(doc) if doc else None

    def exists(self, tenant_name: str) -> bool:
        return self.get_by_name(tenant_name) is not None

    def find_by_partition(self, partition_id: str) -> Optional[TenantMetadata]:
        doc = self._store.find_one(TENANTS_COLLECTION, {"partitionId": partition_id})
        return TenantMetadata.from_doc(doc) if doc else None

    def list_tenants(self) -> List[TenantMetadata]:
        return [TenantMetadata.from_doc(d) for d in self._store.find(TENANTS_COLLECTION)]

    def create(self, tenant_name: str, partition_id: str, admin_id: str,
               connection: str = DEFAULT_CONNECTION) -> TenantMetadata:
        meta = TenantMetadata(id=new_id(), tenant_name=tenant_name, partition_id=partition_id,
                              admin_id=admin_id, connection=connection)
        self._store.insert_one(TENANTS_COLLECTION, meta.to_doc())
        return meta

    def save(self, meta: TenantMetadata) -> TenantMetadata:
        if not self._store.replace_one(TENANTS_COLLECTION, meta.to_doc()):
            self._store.insert_one(TENANTS_COLLECTION, meta.to_doc())
        return meta

    def delete(self, meta_id: str) -> bool:
        return self._store.delete_one(TENANTS_COLLECTION, meta_id)
