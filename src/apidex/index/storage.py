"""SQLite persistence for categories, documents, and endpoint index rows."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from apidex.models import (
    Category,
    Document,
    DocumentSource,
    DocumentStatus,
    EndpointIndexEntry,
    HTTPMethod,
    SpecFormat,
)

_DOCUMENT_COLUMNS = (
    "id, category_id, name, slug, version, description, status, spec_format, "
    "spec_text, spec_hash, source, published_at, created_at, updated_at"
)

_META_FIELDS = frozenset(
    {"name", "slug", "version", "description", "category_id", "status", "published_at"}
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteDocumentStore:
    """Persistence layer for specification documents and their endpoint index.

    Every write method runs on the shared connection without committing;
    callers group writes with :meth:`transaction`.  Nested ``transaction()``
    blocks join the outermost one, which alone commits or rolls back.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._depth = 0
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        self._depth += 1
        try:
            yield self._conn
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                self._conn.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            self._conn.commit()

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS categories (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    slug TEXT NOT NULL UNIQUE,
                    sort_order INTEGER
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY,
                    category_id INTEGER,
                    name TEXT NOT NULL,
                    slug TEXT NOT NULL UNIQUE,
                    version TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'draft',
                    spec_format TEXT NOT NULL DEFAULT 'json',
                    spec_text TEXT NOT NULL,
                    spec_hash TEXT,
                    source TEXT NOT NULL DEFAULT 'manual',
                    published_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(category_id) REFERENCES categories(id) ON DELETE SET NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS endpoint_index (
                    id INTEGER PRIMARY KEY,
                    document_id INTEGER NOT NULL,
                    method TEXT NOT NULL,
                    path TEXT NOT NULL,
                    operation_id TEXT,
                    summary TEXT,
                    tags_json TEXT NOT NULL DEFAULT '[]',
                    deprecated INTEGER NOT NULL DEFAULT 0,
                    security_json TEXT,
                    UNIQUE(document_id, method, path),
                    FOREIGN KEY(document_id) REFERENCES documents(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_endpoint_index_document_id
                    ON endpoint_index(document_id)
                """
            )

    # --- categories ---

    def create_category(
        self, name: str, slug: str, sort_order: Optional[int] = None
    ) -> Category:
        category_id = self._conn.execute(
            "INSERT INTO categories(name, slug, sort_order) VALUES (?, ?, ?)",
            (name, slug, sort_order),
        ).lastrowid
        return Category(id=category_id, name=name, slug=slug, sort_order=sort_order)

    def get_category(self, category_id: int) -> Optional[Category]:
        row = self._conn.execute(
            "SELECT id, name, slug, sort_order FROM categories WHERE id = ?",
            (category_id,),
        ).fetchone()
        return Category(**dict(row)) if row else None

    def get_category_by_slug(self, slug: str) -> Optional[Category]:
        row = self._conn.execute(
            "SELECT id, name, slug, sort_order FROM categories WHERE slug = ?",
            (slug,),
        ).fetchone()
        return Category(**dict(row)) if row else None

    # --- documents ---

    def insert_document(
        self,
        *,
        name: str,
        slug: str,
        version: str,
        spec_text: str,
        description: Optional[str] = None,
        category_id: Optional[int] = None,
        spec_format: SpecFormat = SpecFormat.JSON,
        spec_hash: Optional[str] = None,
        source: DocumentSource = DocumentSource.MANUAL,
        status: DocumentStatus = DocumentStatus.DRAFT,
    ) -> Document:
        now = _now()
        document_id = self._conn.execute(
            """
            INSERT INTO documents(
                category_id, name, slug, version, description, status,
                spec_format, spec_text, spec_hash, source, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                category_id,
                name,
                slug,
                version,
                description,
                status.value,
                spec_format.value,
                spec_text,
                spec_hash,
                source.value,
                now,
                now,
            ),
        ).lastrowid
        return self._require_document(document_id)

    def get_document(self, document_id: int) -> Optional[Document]:
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?", (document_id,)
        ).fetchone()
        return _row_to_document(row) if row else None

    def get_document_by_slug(self, slug: str) -> Optional[Document]:
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE slug = ?", (slug,)
        ).fetchone()
        return _row_to_document(row) if row else None

    def update_document_spec(
        self,
        document_id: int,
        *,
        spec_text: str,
        spec_format: SpecFormat,
        spec_hash: Optional[str],
        source: Optional[DocumentSource] = None,
    ) -> Document:
        """Replace the document's spec text wholesale."""
        if source is None:
            self._conn.execute(
                """
                UPDATE documents SET spec_text = ?, spec_format = ?, spec_hash = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (spec_text, spec_format.value, spec_hash, _now(), document_id),
            )
        else:
            self._conn.execute(
                """
                UPDATE documents SET spec_text = ?, spec_format = ?, spec_hash = ?,
                    source = ?, updated_at = ?
                WHERE id = ?
                """,
                (spec_text, spec_format.value, spec_hash, source.value, _now(), document_id),
            )
        return self._require_document(document_id)

    def update_document_meta(self, document_id: int, **fields: Any) -> Document:
        """Update metadata columns; only names in ``_META_FIELDS`` are accepted."""
        unknown = set(fields) - _META_FIELDS
        if unknown:
            raise ValueError(f"Unknown document fields: {', '.join(sorted(unknown))}")
        if fields:
            values = [
                value.value
                if isinstance(value, DocumentStatus)
                else value.isoformat()
                if isinstance(value, datetime)
                else value
                for value in fields.values()
            ]
            assignments = ", ".join(f"{column} = ?" for column in fields)
            self._conn.execute(
                f"UPDATE documents SET {assignments}, updated_at = ? WHERE id = ?",
                (*values, _now(), document_id),
            )
        return self._require_document(document_id)

    def delete_document(self, document_id: int) -> bool:
        cursor = self._conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))
        return cursor.rowcount > 0

    def _require_document(self, document_id: int) -> Document:
        document = self.get_document(document_id)
        if document is None:
            raise LookupError(f"Document {document_id} does not exist")
        return document

    # --- endpoint index ---

    def delete_endpoints(self, document_id: int) -> int:
        cursor = self._conn.execute(
            "DELETE FROM endpoint_index WHERE document_id = ?", (document_id,)
        )
        return cursor.rowcount

    def insert_endpoint(self, entry: EndpointIndexEntry) -> None:
        self._conn.execute(
            """
            INSERT INTO endpoint_index(
                document_id, method, path, operation_id, summary, tags_json,
                deprecated, security_json
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.document_id,
                entry.method.value,
                entry.path,
                entry.operation_id,
                entry.summary,
                entry.tags_json,
                int(entry.deprecated),
                entry.security_json,
            ),
        )

    def list_endpoints(
        self, document_id: int, method: Optional[HTTPMethod] = None
    ) -> list[EndpointIndexEntry]:
        query = (
            "SELECT document_id, method, path, operation_id, summary, tags_json, "
            "deprecated, security_json FROM endpoint_index WHERE document_id = ?"
        )
        params: list[Any] = [document_id]
        if method is not None:
            query += " AND method = ?"
            params.append(method.value)
        rows = self._conn.execute(query + " ORDER BY path, method", params).fetchall()
        return [
            EndpointIndexEntry(
                document_id=row["document_id"],
                method=HTTPMethod(row["method"]),
                path=row["path"],
                operation_id=row["operation_id"],
                summary=row["summary"],
                tags_json=row["tags_json"],
                deprecated=bool(row["deprecated"]),
                security_json=row["security_json"],
            )
            for row in rows
        ]


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        category_id=row["category_id"],
        name=row["name"],
        slug=row["slug"],
        version=row["version"],
        description=row["description"],
        status=DocumentStatus(row["status"]),
        spec_format=SpecFormat(row["spec_format"]),
        spec_text=row["spec_text"],
        spec_hash=row["spec_hash"],
        source=DocumentSource(row["source"]),
        published_at=row["published_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
