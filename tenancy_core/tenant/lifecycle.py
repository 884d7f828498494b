"""
Tenant lifecycle: create / rename / update credentials / delete.
Keeps Administrator, TenantMetadata and the tenant partition consistent across
independent store writes that share no transaction.

Policy:
- every operation validates and checks existence before the first write;
- once writing starts, a failure propagates as-is and earlier steps are NOT rolled back
  (reconcile() is the repair pass for what that leaves behind);
- index creation on a seeded partition is best-effort, logged and swallowed;
- check-then-act runs under in-process per-key locks (tenant partition id, admin email).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..errors import ConflictError, NotFoundError, ValidationError
from .identity import IdentityStore
from .locks import KeyedLocks
from .models import Administrator, TenantMetadata
from .partition import PartitionProvisioner, partition_id_for
from .registry import TenantRegistry

logger = logging.getLogger("tenancy.lifecycle")

ADMIN_EMAIL_INDEX = "adminEmail"


def _required(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} required")
    return value


def _tenant_key(name: str) -> str:
    return "tenant:" + partition_id_for(name)


def _email_key(email: str) -> str:
    return "email:" + email.lower()


@dataclass
class ReconcileReport:
    orphan_admins: List[str] = field(default_factory=list)
    missing_partitions: List[str] = field(default_factory=list)
    mismatched_partitions: List[str] = field(default_factory=list)
    repaired: bool = False

    @property
    def clean(self) -> bool:
        return not (self.orphan_admins or self.missing_partitions or self.mismatched_partitions)

    def to_dict(self) -> dict:
        return {
            "orphanAdmins": list(self.orphan_admins),
            "missingPartitions": list(self.missing_partitions),
            "mismatchedPartitions": list(self.mismatched_partitions),
            "repaired": self.repaired,
        }


class TenantLifecycleManager:
    def __init__(self, identity: IdentityStore, registry: TenantRegistry,
                 partitions: PartitionProvisioner, hasher, locks: Optional[KeyedLocks] = None) -> None:
        self._identity = identity
        self._registry = registry
        self._partitions = partitions
        self._hasher = hasher
        self._locks = locks or KeyedLocks()

    def get(self, tenant_name: str) -> Optional[TenantMetadata]:
        return self._registry.get_by_name((tenant_name or "").strip())

    def create(self, tenant_name: str, admin_email: str, admin_password: str) -> TenantMetadata:
        tenant_name = _required(tenant_name, "organization_name")
        admin_email = _required(admin_email, "admin email")
        if not (admin_password or "").strip():
            raise ValidationError("admin password required")
        partition_id = partition_id_for(tenant_name)

        with self._locks.hold(_tenant_key(tenant_name), _email_key(admin_email)):
            if self._identity.find_by_email(admin_email) is not None:
                raise ConflictError("admin email already used")
            if self._registry.exists(tenant_name):
                raise ConflictError("organization already exists", tenant_name)
            owner = self._registry.find_by_partition(partition_id)
            if owner is not None:
                raise ConflictError("organization name collides with an existing partition",
                                    f"{partition_id} belongs to {owner.tenant_name}")

            admin = self._identity.create(admin_email, self._hasher.hash(admin_password), tenant_name)
            logger.info("tenant %s: admin %s created", tenant_name, admin.id)

            if not self._partitions.exists(partition_id):
                self._partitions.create(partition_id)
                self._partitions.seed(partition_id, admin, tenant_name)
                self._ensure_admin_index(partition_id)
                logger.info("tenant %s: partition %s provisioned", tenant_name, partition_id)
            else:
                logger.info("tenant %s: reusing existing partition %s", tenant_name, partition_id)

            meta = self._registry.create(tenant_name, partition_id, admin.id)
            logger.info("tenant %s: metadata %s saved", tenant_name, meta.id)
            return meta

    def rename(self, current_name: str, new_name: str) -> TenantMetadata:
        return self._rename(current_name, new_name)

    def rename_with_credentials(self, current_name: str, new_name: str,
                                new_email: str, new_password: str) -> TenantMetadata:
        """Rename and replace the admin's email + password; every check runs before the first write."""
        new_email = _required(new_email, "email")
        if not (new_password or "").strip():
            raise ValidationError("password required")
        digest = self._hasher.hash(new_password)
        return self._rename(current_name, new_name, credentials=(new_email, digest))

    def _rename(self, current_name: str, new_name: str,
                credentials: Optional[Tuple[str, str]] = None) -> TenantMetadata:
        current_name = _required(current_name, "organization_name")
        new_name = _required(new_name, "new_organization_name")
        old_pid = partition_id_for(current_name)
        new_pid = partition_id_for(new_name)
        keys = [_tenant_key(current_name), _tenant_key(new_name)]
        if credentials:
            keys.append(_email_key(credentials[0]))

        with self._locks.hold(*keys):
            meta = self._registry.get_by_name(current_name)
            if meta is None:
                raise NotFoundError(f"organization does not exist: {current_name}")
            if self._registry.exists(new_name):
                raise ConflictError(f"target organization name already exists: {new_name}")
            owner = self._registry.find_by_partition(new_pid)
            if owner is not None and owner.id != meta.id:
                raise ConflictError("organization name collides with an existing partition",
                                    f"{new_pid} belongs to {owner.tenant_name}")
            target_admin = None
            if credentials:
                target_admin = self._admin_for(meta)
                if target_admin is None:
                    raise NotFoundError(f"admin not found for organization: {current_name}")
                holder = self._identity.find_by_email(credentials[0])
                if holder is not None and holder.id != target_admin.id:
                    raise ConflictError("admin email already used")

            if new_pid != old_pid and owner is None and self._partitions.exists(new_pid):
                # unowned leftover of an earlier rename
                self._partitions.drop(new_pid)
                logger.warning("tenant %s: dropped stale partition %s before copy", current_name, new_pid)
            self._partitions.create(new_pid)
            copied = self._partitions.copy(old_pid, new_pid)
            if copied == 0:
                self._partitions.seed_template(
                    new_pid,
                    f"Template added during rename from {current_name} to {new_name}",
                    renamedFrom=current_name,
                    renamedTo=new_name,
                )

            admins = self._identity.find_by_tenant(current_name)
            for admin in admins:
                admin.tenant_name = new_name
                if target_admin is not None and admin.id == target_admin.id:
                    admin.email, admin.password_hash = credentials
                self._identity.save(admin)
            if len(admins) != 1:
                logger.warning("tenant %s: rename touched %d administrators", current_name, len(admins))

            meta.tenant_name = new_name
            meta.partition_id = new_pid
            saved = self._registry.save(meta)
            # old partition is retained
            logger.info("tenant renamed %s -> %s (%s -> %s, %d records)",
                        current_name, new_name, old_pid, new_pid, copied)
            if target_admin is not None:
                logger.info("tenant %s: credentials updated for admin %s", new_name, target_admin.id)
            return saved

    def update_credentials(self, tenant_name: str, new_email: str, new_password: str) -> TenantMetadata:
        tenant_name = _required(tenant_name, "organization name")
        new_email = _required(new_email, "email")
        if not (new_password or "").strip():
            raise ValidationError("password required")

        with self._locks.hold(_tenant_key(tenant_name), _email_key(new_email)):
            meta = self._registry.get_by_name(tenant_name)
            if meta is None:
                raise NotFoundError(f"organization not found: {tenant_name}")
            admin = self._admin_for(meta)
            if admin is None:
                raise NotFoundError(f"admin not found for organization: {tenant_name}")
            holder = self._identity.find_by_email(new_email)
            if holder is not None and holder.id != admin.id:
                raise ConflictError("admin email already used")

            admin.email = new_email
            admin.password_hash = self._hasher.hash(new_password)
            self._identity.save(admin)
            logger.info("tenant %s: credentials updated for admin %s", tenant_name, admin.id)
            return meta

    def delete(self, tenant_name: str) -> None:
        tenant_name = _required(tenant_name, "organization_name")
        with self._locks.hold(_tenant_key(tenant_name)):
            meta = self._registry.get_by_name(tenant_name)
            if meta is None:
                raise NotFoundError(f"organization not found: {tenant_name}")

            # partition, then admins, then metadata
            if self._partitions.exists(meta.partition_id):
                self._partitions.drop(meta.partition_id)
            removed = 0
            for admin in self._identity.find_by_tenant(tenant_name):
                if self._identity.delete(admin.id):
                    removed += 1
            self._registry.delete(meta.id)
            logger.info("tenant %s deleted (partition %s, %d admins)", tenant_name, meta.partition_id, removed)

    def reconcile(self, repair: bool = False) -> ReconcileReport:
        """Find (and optionally fix) what an interrupted operation left behind. Idempotent."""
        report = ReconcileReport(repaired=repair)
        tenants = {m.tenant_name: m for m in self._registry.list_tenants()}

        for admin in self._identity.list_admins():
            if admin.tenant_name not in tenants:
                report.orphan_admins.append(admin.id)
                if repair:
                    self._identity.delete(admin.id)
                    logger.warning("reconcile: removed orphan admin %s (tenant %s)", admin.id, admin.tenant_name)

        for name, meta in tenants.items():
            expected = partition_id_for(name)
            if meta.partition_id != expected:
                report.mismatched_partitions.append(name)
                if repair:
                    meta.partition_id = expected
                    self._registry.save(meta)
                    logger.warning("reconcile: tenant %s partition id reset to %s", name, expected)
            if not self._partitions.exists(expected):
                report.missing_partitions.append(name)
                if repair:
                    self._reprovision(meta, expected)
        return report

    def _reprovision(self, meta: TenantMetadata, partition_id: str) -> None:
        self._partitions.create(partition_id)
        admin = self._admin_for(meta)
        if admin is not None:
            self._partitions.seed(partition_id, admin, meta.tenant_name)
        else:
            self._partitions.seed_template(partition_id, f"Template re-created by reconcile for {meta.tenant_name}")
        self._ensure_admin_index(partition_id)
        logger.warning("reconcile: re-provisioned partition %s for tenant %s", partition_id, meta.tenant_name)

    def _admin_for(self, meta: TenantMetadata) -> Optional[Administrator]:
        admin = self._identity.get(meta.admin_id)
        if admin is not None and admin.tenant_name == meta.tenant_name:
            return admin
        candidates = self._identity.find_by_tenant(meta.tenant_name)
        return candidates[0] if candidates else None

    def _ensure_admin_index(self, partition_id: str) -> None:
        try:
            self._partitions.ensure_index(partition_id, ADMIN_EMAIL_INDEX)
        except Exception as e:
            logger.warning("could not create index %s on %s: %s", ADMIN_EMAIL_INDEX, partition_id, e)
