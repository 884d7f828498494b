"""
Tenant lifecycle: create / rename / update credentials / delete / reconcile over the memory store.
"""
from __future__ import annotations

import logging

import pytest

from tenancy_core.core import build_platform
from tenancy_core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from tenancy_core.storage import MemoryDocumentStore
from tenancy_core.tenant.identity import ADMINS_COLLECTION
from tenancy_core.tenant.partition import ADMIN_PROFILE_TYPE
from tenancy_core.tenant.registry import TENANTS_COLLECTION


class _NoIndexStore(MemoryDocumentStore):
    def create_index(self, name, field):
        raise StorageError("index build failed", name)


class _NoPartitionStore(MemoryDocumentStore):
    def create_collection(self, name):
        if name.startswith("org_"):
            raise StorageError("create_collection failed", name)
        super().create_collection(name)


def test_create_then_get(platform, store):
    meta = platform.create_tenant("  Acme Corp ", " a@x.com ", "pw")
    assert meta.tenant_name == "Acme Corp"
    assert meta.partition_id == "org_acme_corp"
    assert meta.connection == "single_store_instance"
    got = platform.get_tenant("Acme Corp")
    assert got is not None and got.id == meta.id and got.admin_id == meta.admin_id

    admin = platform.identity.get(meta.admin_id)
    assert admin.email == "a@x.com"
    assert admin.tenant_name == "Acme Corp"
    assert admin.password_hash and admin.password_hash != "pw"

    records = store.find("org_acme_corp")
    assert len(records) == 2
    assert any(r.get("template") is True for r in records)
    assert "adminEmail" in store.list_indexes("org_acme_corp")


def test_get_unknown_tenant_is_none(platform):
    assert platform.get_tenant("ghost") is None
    assert platform.get_tenant("") is None


@pytest.mark.parametrize("name,email,password", [
    ("", "a@x.com", "pw"),
    ("   ", "a@x.com", "pw"),
    ("acme", "", "pw"),
    ("acme", "a@x.com", ""),
    ("acme", "a@x.com", "   "),
])
def test_create_rejects_missing_fields_before_writing(platform, store, name, email, password):
    with pytest.raises(ValidationError):
        platform.create_tenant(name, email, password)
    assert store.list_collections() == []


def test_create_email_conflict_regardless_of_name(platform, store):
    platform.create_tenant("acme", "a@x.com", "pw")
    with pytest.raises(ConflictError) as ei:
        platform.create_tenant("other", "a@x.com", "pw2")
    assert ei.value.message == "admin email already used"
    assert not store.collection_exists("org_other")
    assert len(store.find(ADMINS_COLLECTION)) == 1


def test_create_name_conflict(platform):
    platform.create_tenant("acme", "a@x.com", "pw")
    with pytest.raises(ConflictError) as ei:
        platform.create_tenant("acme", "b@x.com", "pw")
    assert ei.value.message == "organization already exists"


def test_create_partition_collision_between_names(platform, store):
    platform.create_tenant("acme corp", "a@x.com", "pw")
    with pytest.raises(ConflictError):
        platform.create_tenant("ACME CORP", "b@x.com", "pw")
    with pytest.raises(ConflictError):
        platform.create_tenant("acme/corp", "c@x.com", "pw")
    assert len(store.find(TENANTS_COLLECTION)) == 1
    assert platform.identity.find_by_email("b@x.com") is None


def test_index_failure_is_swallowed(settings, hasher, caplog):
    store = _NoIndexStore()
    platform = build_platform(settings, store=store, hasher=hasher)
    with caplog.at_level(logging.WARNING, logger="tenancy.lifecycle"):
        meta = platform.create_tenant("acme", "a@x.com", "pw")
    assert platform.get_tenant("acme").id == meta.id
    assert len(store.find("org_acme")) == 2
    assert any("could not create index" in r.getMessage() for r in caplog.records)


def test_partition_failure_leaves_admin_and_reconcile_removes_it(settings, hasher):
    store = _NoPartitionStore()
    platform = build_platform(settings, store=store, hasher=hasher)
    with pytest.raises(StorageError):
        platform.create_tenant("acme", "a@x.com", "pw")
    orphan = platform.identity.find_by_email("a@x.com")
    assert orphan is not None
    assert platform.get_tenant("acme") is None

    report = platform.reconcile()
    assert report.orphan_admins == [orphan.id]
    assert report.repaired is False
    assert platform.identity.find_by_email("a@x.com") is not None

    report = platform.reconcile(repair=True)
    assert report.orphan_admins == [orphan.id]
    assert platform.identity.find_by_email("a@x.com") is None
    assert platform.reconcile().clean


def test_rename_copies_every_record(platform, store):
    platform.create_tenant("acme corp", "a@x.com", "pw")
    platform.partitions.insert_many("org_acme_corp", [{"name": f"e{i}", "salary": i} for i in range(3)])
    before = {r["_id"] for r in store.find("org_acme_corp")}
    assert len(before) == 5

    meta = platform.rename_tenant("acme corp", "ACME-2")
    assert meta.tenant_name == "ACME-2"
    assert meta.partition_id == "org_acme-2"
    assert {r["_id"] for r in store.find("org_acme-2")} == before
    # old partition retained
    assert store.collection_exists("org_acme_corp")
    assert platform.get_tenant("acme corp") is None
    assert platform.get_tenant("ACME-2").id == meta.id

    admin = platform.identity.get(meta.admin_id)
    assert admin.tenant_name == "ACME-2"
    profile = [r for r in store.find("org_acme-2") if r.get("type") == ADMIN_PROFILE_TYPE]
    assert len(profile) == 1


def test_rename_empty_partition_seeds_template(platform, store):
    platform.create_tenant("acme", "a@x.com", "pw")
    store.drop_collection("org_acme")
    platform.rename_tenant("acme", "beta")
    records = store.find("org_beta")
    assert len(records) == 1
    assert records[0]["template"] is True
    assert records[0]["renamedFrom"] == "acme"
    assert records[0]["renamedTo"] == "beta"


def test_rename_errors(platform):
    platform.create_tenant("acme", "a@x.com", "pw")
    platform.create_tenant("beta", "b@x.com", "pw")
    with pytest.raises(NotFoundError):
        platform.rename_tenant("ghost", "gamma")
    with pytest.raises(ConflictError):
        platform.rename_tenant("acme", "beta")
    with pytest.raises(ConflictError):
        platform.rename_tenant("acme", "BETA")
    with pytest.raises(ValidationError):
        platform.rename_tenant("acme", "  ")
    assert platform.get_tenant("acme") is not None


def test_rename_moves_every_admin(platform, hasher, caplog):
    platform.create_tenant("acme", "a@x.com", "pw")
    platform.identity.create("second@x.com", hasher.hash("pw"), "acme")
    with caplog.at_level(logging.WARNING, logger="tenancy.lifecycle"):
        platform.rename_tenant("acme", "beta")
    assert sorted(a.email for a in platform.identity.find_by_tenant("beta")) == ["a@x.com", "second@x.com"]
    assert platform.identity.find_by_tenant("acme") == []
    assert any("2 administrators" in r.getMessage() for r in caplog.records)


def test_rename_without_admin_still_renames(platform):
    meta = platform.create_tenant("acme", "a@x.com", "pw")
    platform.identity.delete(meta.admin_id)
    renamed = platform.rename_tenant("acme", "beta")
    assert renamed.tenant_name == "beta"


def test_rename_there_and_back(platform, store):
    platform.create_tenant("acme", "a@x.com", "pw")
    platform.rename_tenant("acme", "beta")
    platform.partitions.insert_one("org_beta", {"name": "late"})
    meta = platform.rename_tenant("beta", "acme")
    assert meta.partition_id == "org_acme"
    assert len(store.find("org_acme")) == 3
    assert store.collection_exists("org_beta")
    assert platform.identity.get(meta.admin_id).tenant_name == "acme"


def test_rename_onto_stale_partition_replaces_it(platform, store):
    platform.create_tenant("beta", "x@x.com", "pw")
    platform.rename_tenant("beta", "gamma")
    assert store.collection_exists("org_beta")

    platform.create_tenant("acme", "a@x.com", "pw")
    source_ids = {r["_id"] for r in store.find("org_acme")}
    platform.rename_tenant("acme", "beta")
    records = store.find("org_beta")
    assert {r["_id"] for r in records} == source_ids
    emails = [r["adminEmail"] for r in records if r.get("type") == ADMIN_PROFILE_TYPE]
    assert emails == ["a@x.com"]
    # the tenant that moved away keeps its own copy
    assert len(store.find("org_gamma")) == 2


def test_rename_with_credentials(platform, hasher):
    meta = platform.create_tenant("acme", "a@x.com", "pw")
    renamed = platform.rename_tenant("acme", "beta", email="b@x.com", password="pw2")
    assert renamed.tenant_name == "beta"
    admin = platform.identity.get(meta.admin_id)
    assert (admin.email, admin.tenant_name) == ("b@x.com", "beta")
    assert hasher.verify("pw2", admin.password_hash)


@pytest.mark.parametrize("email,password,error", [
    ("held@x.com", "pw2", ConflictError),
    ("n@x.com", "x" * 73, ValidationError),
    ("n@x.com", "  ", ValidationError),
    ("", "pw2", ValidationError),
])
def test_rejected_rename_with_credentials_writes_nothing(platform, store, email, password, error):
    meta = platform.create_tenant("acme", "a@x.com", "pw")
    platform.create_tenant("other", "held@x.com", "pw")
    with pytest.raises(error):
        platform.rename_tenant("acme", "beta", email=email, password=password)
    assert platform.get_tenant("acme").id == meta.id
    assert platform.get_tenant("beta") is None
    assert not store.collection_exists("org_beta")
    assert platform.identity.get(meta.admin_id).email == "a@x.com"


def test_update_credentials(platform, hasher):
    meta = platform.create_tenant("acme", "a@x.com", "pw")
    updated = platform.update_tenant_credentials("acme", "new@x.com", "pw2")
    assert updated.id == meta.id
    admin = platform.identity.get(meta.admin_id)
    assert admin.email == "new@x.com"
    assert hasher.verify("pw2", admin.password_hash)
    assert not hasher.verify("pw", admin.password_hash)
    assert platform.identity.find_by_email("a@x.com") is None


def test_update_credentials_same_email_allowed(platform):
    platform.create_tenant("acme", "a@x.com", "pw")
    platform.update_tenant_credentials("acme", "a@x.com", "pw2")


def test_update_credentials_errors(platform):
    meta = platform.create_tenant("acme", "a@x.com", "pw")
    platform.create_tenant("beta", "b@x.com", "pw")
    with pytest.raises(ConflictError):
        platform.update_tenant_credentials("acme", "b@x.com", "pw2")
    with pytest.raises(NotFoundError):
        platform.update_tenant_credentials("ghost", "g@x.com", "pw")
    with pytest.raises(ValidationError):
        platform.update_tenant_credentials("acme", "", "pw")
    with pytest.raises(ValidationError):
        platform.update_tenant_credentials("acme", "n@x.com", "")
    platform.identity.delete(meta.admin_id)
    with pytest.raises(NotFoundError):
        platform.update_tenant_credentials("acme", "n@x.com", "pw")


def test_delete_removes_everything(platform, hasher, store):
    platform.create_tenant("acme", "a@x.com", "pw")
    platform.identity.create("second@x.com", hasher.hash("pw"), "acme")
    platform.lifecycle.delete("acme")
    assert platform.get_tenant("acme") is None
    assert not store.collection_exists("org_acme")
    assert platform.identity.find_by_tenant("acme") == []
    with pytest.raises(NotFoundError):
        platform.lifecycle.delete("acme")


def test_delete_with_no_admins_or_partition(platform, store):
    meta = platform.create_tenant("acme", "a@x.com", "pw")
    platform.identity.delete(meta.admin_id)
    store.drop_collection("org_acme")
    platform.lifecycle.delete("acme")
    assert platform.get_tenant("acme") is None


def test_create_rename_delete_walkthrough(platform, store):
    meta = platform.create_tenant("acme corp", "a@x.com", "pw")
    assert (meta.tenant_name, meta.partition_id) == ("acme corp", "org_acme_corp")
    assert len(store.find("org_acme_corp")) == 2

    meta = platform.rename_tenant("acme corp", "ACME-2")
    assert (meta.tenant_name, meta.partition_id) == ("ACME-2", "org_acme-2")
    assert len(store.find("org_acme-2")) == 2
    assert store.collection_exists("org_acme_corp")

    platform.lifecycle.delete("ACME-2")
    assert not store.collection_exists("org_acme-2")
    assert platform.identity.find_by_tenant("ACME-2") == []
    assert platform.get_tenant("ACME-2") is None


def test_reconcile_missing_partition(platform, store):
    meta = platform.create_tenant("acme", "a@x.com", "pw")
    store.drop_collection("org_acme")
    report = platform.reconcile()
    assert report.missing_partitions == ["acme"]
    assert not store.collection_exists("org_acme")

    report = platform.reconcile(repair=True)
    assert report.to_dict()["missingPartitions"] == ["acme"]
    records = store.find("org_acme")
    assert len(records) == 2
    assert any(r.get("adminId") == meta.admin_id for r in records)
    assert platform.reconcile().clean


def test_reconcile_mismatched_partition(platform, store):
    meta = platform.create_tenant("acme", "a@x.com", "pw")
    meta.partition_id = "org_elsewhere"
    platform.registry.save(meta)
    report = platform.reconcile(repair=True)
    assert report.mismatched_partitions == ["acme"]
    assert platform.get_tenant("acme").partition_id == "org_acme"
    assert platform.reconcile().clean
