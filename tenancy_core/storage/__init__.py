"""
Document store capability shared by the registry, identity store and tenant partitions.
"""
from .document_store import MemoryDocumentStore, MongoDocumentStore, create_document_store, new_id

__all__ = [
    "MemoryDocumentStore",
    "MongoDocumentStore",
    "create_document_store",
    "new_id",
]
