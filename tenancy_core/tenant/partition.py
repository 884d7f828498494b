"""
Tenant partitions: one collection per tenant in the shared store, named org_<sanitized name>.
The name -> partition id mapping is a pure function and the join key between the
registry and the partitions, so it is recomputed rather than trusted.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List

from .models import Administrator, utc_ts

logger = logging.getLogger("tenancy.partition")

PARTITION_PREFIX = "org_"
_UNSAFE = re.compile(r"[^a-z0-9_-]")

# Shape of the records a tenant partition is expected to hold.
TEMPLATE_FIELDS = {
    "name": "string",
    "email": "string",
    "position": "string",
    "salary": "number",
    "createdAt": "date",
    "updatedAt": "date",
}
ADMIN_PROFILE_TYPE = "admin_profile"


def sanitize_name(name: str) -> str:
    """Trim, lower-case, and replace every char outside [a-z0-9_-] with '_'."""
    return _UNSAFE.sub("_", (name or "").strip().lower())


def partition_id_for(tenant_name: str) -> str:
    return PARTITION_PREFIX + sanitize_name(tenant_name)


def template_record(description: str, **extra: Any) -> Dict[str, Any]:
    rec = {
        "template": True,
        "fields": dict(TEMPLATE_FIELDS),
        "createdAt": utc_ts(),
        "description": description,
    }
    rec.update(extra)
    return rec


def admin_profile_record(admin: Administrator, tenant_name: str) -> Dict[str, Any]:
    return {
        "type": ADMIN_PROFILE_TYPE,
        "adminId": admin.id,
        "adminEmail": admin.email,
        "tenantName": tenant_name,
        "createdAt": utc_ts(),
    }


class PartitionProvisioner:
    """Creates, seeds, copies and drops partitions. No atomicity across calls."""

    def __init__(self, store, copy_batch_size: int = 500) -> None:
        self._store = store
        self._batch = max(1, copy_batch_size)

    def exists(self, partition_id: str) -> bool:
        return self._store.collection_exists(partition_id)

    def create(self, partition_id: str) -> None:
        if not self._store.collection_exists(partition_id):
            self._store.create_collection(partition_id)

    def insert_one(self, partition_id: str, record: Dict[str, Any]) -> str:
        return self._store.insert_one(partition_id, record)

    def insert_many(self, partition_id: str, records: List[Dict[str, Any]]) -> List[str]:
        if not records:
            return []
        return self._store.insert_many(partition_id, records)

    def find_all(self, partition_id: str) -> List[Dict[str, Any]]:
        return self._store.find(partition_id)

    def drop(self, partition_id: str) -> None:
        self._store.drop_collection(partition_id)

    def ensure_index(self, partition_id: str, field: str) -> None:
        self._store.create_index(partition_id, field)

    def seed(self, partition_id: str, admin: Administrator, tenant_name: str) -> None:
        """Template record plus the admin profile (no password)."""
        self.insert_one(partition_id, template_record(
            "Template document describing the tenant 'Employee' schema. Remove if needed."
        ))
        self.insert_one(partition_id, admin_profile_record(admin, tenant_name))

    def seed_template(self, partition_id: str, description: str, **extra: Any) -> str:
        return self.insert_one(partition_id, template_record(description, **extra))

    def copy(self, source_id: str, target_id: str) -> int:
        """
        Copy every record verbatim (same _id) from source to target and return the count.
        Reads the whole source first; writes are upserts so a record already in the
        target under the same _id is overwritten rather than duplicated.
        """
        records = self.find_all(source_id)
        for start in range(0, len(records), self._batch):
            self._store.save_many(target_id, records[start:start + self._batch])
        logger.info("copied %d records %s -> %s", len(records), source_id, target_id)
        return len(records)
