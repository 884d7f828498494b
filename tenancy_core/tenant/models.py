"""
Registry-level record kinds: Administrator (master_admins) and TenantMetadata (master_tenants).
Store documents use camelCase keys; the password hash never leaves through to_dict().
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict

DEFAULT_CONNECTION = "single_store_instance"


def utc_ts() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S.000Z", time.gmtime())


@dataclass
class Administrator:
    id: str
    email: str
    password_hash: str
    tenant_name: str
    created_at: str = field(default_factory=utc_ts)
    updated_at: str = field(default_factory=utc_ts)

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Administrator":
        return cls(
            id=str(doc["_id"]),
            email=doc.get("email", ""),
            password_hash=doc.get("passwordHash", ""),
            tenant_name=doc.get("tenantName", ""),
            created_at=doc.get("createdAt", ""),
            updated_at=doc.get("updatedAt", ""),
        )

    def to_doc(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "email": self.email,
            "passwordHash": self.password_hash,
            "tenantName": self.tenant_name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "email": self.email, "tenantName": self.tenant_name}


@dataclass
class TenantMetadata:
    id: str
    tenant_name: str
    partition_id: str
    admin_id: str
    connection: str = DEFAULT_CONNECTION

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "TenantMetadata":
        return cls(
            id=str(doc["_id"]),
            tenant_name=doc.get("tenantName", ""),
            partition_id=doc.get("partitionId", ""),
            admin_id=doc.get("adminId", ""),
            connection=doc.get("connection", DEFAULT_CONNECTION),
        )

    def to_doc(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "tenantName": self.tenant_name,
            "partitionId": self.partition_id,
            "adminId": self.admin_id,
            "connection": self.connection,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organizationName": self.tenant_name,
            "collectionName": self.partition_id,
            "adminUserId": self.admin_id,
            "connectionDetails": self.connection,
        }
