"""
Shared document store capability: named collections of schemaless records.
- In-memory backend: single process, no external dependency (default, tests).
- MongoDB backend: TENANCY_STORE_URL=mongodb://... shares the store across instances.
Every call is atomic for a single record only; nothing here spans calls.
Records are addressed by a string "_id" assigned on insert when absent.
"""
from __future__ import annotations

import copy
import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

from pymongo import ASCENDING, MongoClient, ReplaceOne
from pymongo.errors import CollectionInvalid, PyMongoError

from ..config import Settings
from ..errors import StorageError

logger = logging.getLogger("tenancy.store")

Record = Dict[str, Any]


def new_id() -> str:
    return uuid.uuid4().hex


def _matches(doc: Record, query: Optional[Dict[str, Any]]) -> bool:
    if not query:
        return True
    return all(doc.get(k) == v for k, v in query.items())


class MemoryDocumentStore:
    """Process-local store: collection -> _id -> record. Returns copies, never live records."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._collections: Dict[str, Dict[str, Record]] = {}
        self._indexes: Dict[str, List[str]] = {}

    def list_collections(self) -> List[str]:
        with self._lock:
            return sorted(self._collections)

    def collection_exists(self, name: str) -> bool:
        with self._lock:
            return name in self._collections

    def create_collection(self, name: str) -> None:
        with self._lock:
            self._collections.setdefault(name, {})

    def drop_collection(self, name: str) -> None:
        with self._lock:
            self._collections.pop(name, None)
            self._indexes.pop(name, None)

    def insert_one(self, name: str, doc: Record) -> str:
        return self.insert_many(name, [doc])[0]

    def insert_many(self, name: str, docs: Iterable[Record]) -> List[str]:
        prepared = [copy.deepcopy(d) for d in docs]
        with self._lock:
            coll = self._collections.setdefault(name, {})
            ids = []
            for d in prepared:
                d.setdefault("_id", new_id())
                if d["_id"] in coll or d["_id"] in ids:
                    raise StorageError(f"duplicate key in {name}", str(d["_id"]))
                ids.append(d["_id"])
            for d in prepared:
                coll[d["_id"]] = d
            return ids

    def save_many(self, name: str, docs: Iterable[Record]) -> int:
        """Upsert by _id."""
        prepared = [copy.deepcopy(d) for d in docs]
        with self._lock:
            coll = self._collections.setdefault(name, {})
            for d in prepared:
                d.setdefault("_id", new_id())
                coll[d["_id"]] = d
            return len(prepared)

    def find(self, name: str, query: Optional[Dict[str, Any]] = None) -> List[Record]:
        with self._lock:
            coll = self._collections.get(name, {})
            return [copy.deepcopy(d) for d in coll.values() if _matches(d, query)]

    def find_one(self, name: str, query: Dict[str, Any]) -> Optional[Record]:
        with self._lock:
            for d in self._collections.get(name, {}).values():
                if _matches(d, query):
                    return copy.deepcopy(d)
            return None

    def replace_one(self, name: str, doc: Record) -> bool:
        with self._lock:
            coll = self._collections.get(name)
            if coll is None or doc.get("_id") not in coll:
                return False
            coll[doc["_id"]] = copy.deepcopy(doc)
            return True

    def delete_one(self, name: str, doc_id: str) -> bool:
        with self._lock:
            coll = self._collections.get(name)
            if coll is None or doc_id not in coll:
                return False
            del coll[doc_id]
            return True

    def delete_many(self, name: str, query: Dict[str, Any]) -> int:
        with self._lock:
            coll = self._collections.get(name, {})
            doomed = [k for k, d in coll.items() if _matches(d, query)]
            for k in doomed:
                del coll[k]
            return len(doomed)

    def create_index(self, name: str, field: str) -> None:
        with self._lock:
            if name not in self._collections:
                raise StorageError(f"collection {name} does not exist")
            fields = self._indexes.setdefault(name, [])
            if field not in fields:
                fields.append(field)

    def list_indexes(self, name: str) -> List[str]:
        with self._lock:
            return list(self._indexes.get(name, []))


@contextmanager
def _storage_errors(op: str, name: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as e:
        raise StorageError(f"{op} failed on {name}", str(e)) from e


class MongoDocumentStore:
    """MongoDB backend; driver errors surface as StorageError without retry."""

    def __init__(self, url: str, db_name: str, timeout_ms: int = 5000, client: Optional[MongoClient] = None) -> None:
        self._client = client or MongoClient(url, serverSelectionTimeoutMS=timeout_ms)
        self._db = self._client[db_name]

    def list_collections(self) -> List[str]:
        with _storage_errors("list_collections", self._db.name):
            return sorted(self._db.list_collection_names())

    def collection_exists(self, name: str) -> bool:
        with _storage_errors("collection_exists", name):
            return name in self._db.list_collection_names(filter={"name": name})

    def create_collection(self, name: str) -> None:
        with _storage_errors("create_collection", name):
            try:
                self._db.create_collection(name)
            except CollectionInvalid:
                # created concurrently
                pass

    def drop_collection(self, name: str) -> None:
        with _storage_errors("drop_collection", name):
            self._db.drop_collection(name)

    def insert_one(self, name: str, doc: Record) -> str:
        doc = dict(doc)
        doc.setdefault("_id", new_id())
        with _storage_errors("insert_one", name):
            self._db[name].insert_one(doc)
        return doc["_id"]

    def insert_many(self, name: str, docs: Iterable[Record]) -> List[str]:
        prepared = [dict(d) for d in docs]
        if not prepared:
            return []
        for d in prepared:
            d.setdefault("_id", new_id())
        with _storage_errors("insert_many", name):
            self._db[name].insert_many(prepared, ordered=True)
        return [d["_id"] for d in prepared]

    def save_many(self, name: str, docs: Iterable[Record]) -> int:
        ops = []
        for d in docs:
            d = dict(d)
            d.setdefault("_id", new_id())
            ops.append(ReplaceOne({"_id": d["_id"]}, d, upsert=True))
        if not ops:
            return 0
        with _storage_errors("save_many", name):
            self._db[name].bulk_write(ops, ordered=True)
        return len(ops)

    def find(self, name: str, query: Optional[Dict[str, Any]] = None) -> List[Record]:
        with _storage_errors("find", name):
            return list(self._db[name].find(query or {}))

    def find_one(self, name: str, query: Dict[str, Any]) -> Optional[Record]:
        with _storage_errors("find_one", name):
            return self._db[name].find_one(query)

    def replace_one(self, name: str, doc: Record) -> bool:
        with _storage_errors("replace_one", name):
            res = self._db[name].replace_one({"_id": doc["_id"]}, doc)
        return res.matched_count > 0

    def delete_one(self, name: str, doc_id: str) -> bool:
        with _storage_errors("delete_one", name):
            res = self._db[name].delete_one({"_id": doc_id})
        return res.deleted_count > 0

    def delete_many(self, name: str, query: Dict[str, Any]) -> int:
        with _storage_errors("delete_many", name):
            return self._db[name].delete_many(query).deleted_count

    def create_index(self, name: str, field: str) -> None:
        with _storage_errors("create_index", name):
            self._db[name].create_index([(field, ASCENDING)])


def create_document_store(settings: Settings):
    """
    Pick the backend from settings.store_url:
    - empty: in-memory (single process).
    - mongodb:// or mongodb+srv://: MongoDB.
    """
    url = settings.store_url
    if not url:
        return MemoryDocumentStore()
    if url.startswith("mongodb://") or url.startswith("mongodb+srv://"):
        logger.info("document store: mongodb db=%s", settings.store_db)
        return MongoDocumentStore(url, settings.store_db, timeout_ms=settings.store_timeout_ms)
    logger.warning("unsupported TENANCY_STORE_URL scheme, using in-memory store")
    return MemoryDocumentStore()
