"""
Tenant lifecycle: administrator identities, tenant registry, per-tenant partitions.
Registry-level records live in master_admins / master_tenants; tenant data lives in org_* partitions.
"""
from .identity import IdentityStore
from .lifecycle import ReconcileReport, TenantLifecycleManager
from .locks import KeyedLocks
from .models import Administrator, TenantMetadata
from .partition import PartitionProvisioner, partition_id_for, sanitize_name
from .registry import TenantRegistry

__all__ = [
    "Administrator",
    "TenantMetadata",
    "IdentityStore",
    "TenantRegistry",
    "PartitionProvisioner",
    "partition_id_for",
    "sanitize_name",
    "KeyedLocks",
    "TenantLifecycleManager",
    "ReconcileReport",
]
