"""Endpoint indexing: derive one row per (path, method) and replace a document's index."""

from __future__ import annotations

import json
import logging
import sqlite3

from apidex.exceptions import IndexConsistencyError
from apidex.index.storage import SQLiteDocumentStore
from apidex.models import EndpointIndexEntry, ParsedSpec

LOGGER = logging.getLogger(__name__)


def build_entries(document_id: int, parsed: ParsedSpec) -> list[EndpointIndexEntry]:
    """Return the index rows for *parsed*, one per path and HTTP method."""
    entries: list[EndpointIndexEntry] = []
    for path, method, operation in parsed.operations():
        security_json = (
            json.dumps(operation.security, separators=(",", ":"))
            if operation.security is not None
            else None
        )
        entries.append(
            EndpointIndexEntry(
                document_id=document_id,
                method=method,
                path=path,
                operation_id=operation.operation_id,
                summary=operation.summary,
                tags_json=json.dumps(operation.tags, separators=(",", ":"), ensure_ascii=False),
                deprecated=operation.deprecated,
                security_json=security_json,
            )
        )
    return entries


class EndpointIndexer:
    """Keeps a document's endpoint index in step with its spec text."""

    def __init__(self, store: SQLiteDocumentStore) -> None:
        self.store = store

    def reindex(self, document_id: int, parsed: ParsedSpec, *, atomic: bool = True) -> int:
        """Delete every index row of *document_id* and insert the rows derived from *parsed*.

        With ``atomic=True`` the delete and inserts run in their own
        transaction.  With ``atomic=False`` they join the transaction the
        caller already holds, so the caller's other writes commit or roll
        back together with the index.

        Returns:
            The number of rows written.

        Raises:
            IndexConsistencyError: If any statement fails.  The transaction is
                rolled back and the previous rows stay visible.
        """
        entries = build_entries(document_id, parsed)
        try:
            if atomic:
                with self.store.transaction():
                    self._replace(document_id, entries)
            else:
                self._replace(document_id, entries)
        except sqlite3.Error as exc:
            LOGGER.error("Reindex of document %s failed: %s", document_id, exc)
            raise IndexConsistencyError(
                f"Failed to rebuild endpoint index for document {document_id}: {exc}"
            ) from exc

        LOGGER.info("Indexed %d endpoint(s) for document %s", len(entries), document_id)
        return len(entries)

    def _replace(self, document_id: int, entries: list[EndpointIndexEntry]) -> None:
        removed = self.store.delete_endpoints(document_id)
        LOGGER.debug("Removed %d stale endpoint(s) for document %s", removed, document_id)
        if not entries:
            return
        for entry in entries:
            self.store.insert_endpoint(entry)
