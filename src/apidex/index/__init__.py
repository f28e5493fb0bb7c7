"""Endpoint index: SQLite persistence and the delete-then-insert reindex."""

from apidex.index.indexer import EndpointIndexer, build_entries
from apidex.index.storage import SQLiteDocumentStore

__all__ = ["EndpointIndexer", "SQLiteDocumentStore", "build_entries"]
