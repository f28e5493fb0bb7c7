"""Document orchestration: import, update, and reindex specification documents.

:class:`DocumentService` is the one place where the normalizer, the parser,
the provider registry, the endpoint indexer, and the SQLite store meet.
Every operation that writes spec text parses it first and commits the text
and its endpoint index in the same transaction, so a document is never
observable with spec text that does not match its index.

Policies:

* Every spec write (import, update, upload) reindexes automatically;
  :meth:`DocumentService.reindex` is the explicit manual trigger.
* Importing under an existing slug replaces that document's spec text and
  metadata instead of creating a second document.
"""

from __future__ import annotations

import hashlib
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Optional

from apidex.config import default_db_path, resolve_credential
from apidex.exceptions import (
    ConfigurationError,
    InvalidUsageError,
    NotFoundError,
    SpecValidationError,
)
from apidex.index import EndpointIndexer, SQLiteDocumentStore
from apidex.models import (
    Category,
    ContentKind,
    Document,
    DocumentSource,
    DocumentStatus,
    EndpointIndexEntry,
    HTTPMethod,
    LlmGenerateRequest,
    ParsedSpec,
    ProviderId,
    Settings,
    SpecFormat,
    SpecPayload,
)
from apidex.normalizer import normalize
from apidex.parser import detect_content_kind, parse_or_fail
from apidex.providers import ProviderRegistry

logger = logging.getLogger(__name__)


class DocumentService:
    """Facade over the ingestion pipeline.

    Args:
        store: The document store; the service does not close it.
        registry: Provider registry used for PDF imports.
        settings: Effective settings; only the selected provider's block is
            ever read.
    """

    def __init__(
        self,
        store: SQLiteDocumentStore,
        registry: ProviderRegistry,
        settings: Settings,
    ) -> None:
        self.store = store
        self.registry = registry
        self.settings = settings
        self.indexer = EndpointIndexer(store)

    @classmethod
    def from_settings(cls, settings: Settings) -> DocumentService:
        db_path = settings.db_path or default_db_path()
        return cls(SQLiteDocumentStore(db_path), ProviderRegistry.default(settings), settings)

    # ------------------------------------------------------------------ #
    # LLM path
    # ------------------------------------------------------------------ #

    def resolve_request(
        self,
        provider: ProviderId,
        pdf_bytes: bytes,
        title: str,
        version: str,
        description: Optional[str] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> LlmGenerateRequest:
        """Build the generation request from the selected provider's settings only.

        Raises:
            ConfigurationError: If the provider's credential is blank, or
                its ``env:`` / ``file:`` reference cannot be resolved.
        """
        config = self.settings.provider(provider)
        setting = f"{provider.value}.api_key"
        api_key = resolve_credential(config.api_key)
        if api_key is None or not api_key.strip():
            raise ConfigurationError(
                f"{provider.value} API key ({setting}) is required", setting=setting
            )
        return LlmGenerateRequest(
            provider=provider,
            api_url=config.api_url,
            api_key=api_key,
            model=config.model,
            referer=config.referer,
            app_title=config.app_title,
            pdf_bytes=pdf_bytes,
            title=title,
            version=version,
            description=description,
            options=options or {},
        )

    def generate_draft(
        self,
        pdf_bytes: bytes,
        provider: ProviderId,
        title: str,
        version: str,
        description: Optional[str] = None,
    ) -> str:
        """Return the provider's raw draft text without normalizing or storing it."""
        _require_pdf(pdf_bytes)
        request = self.resolve_request(provider, pdf_bytes, title, version, description)
        return self.registry.generate(request)

    def import_from_pdf(
        self,
        name: str,
        slug: str,
        version: str,
        description: Optional[str],
        category_id: Optional[int],
        pdf_bytes: bytes,
        provider: ProviderId,
    ) -> Document:
        """Generate a draft from *pdf_bytes*, validate it, and store it with its index.

        Nothing is written unless the draft parses.

        Raises:
            ConfigurationError: Missing credential or unregistered provider.
            ProviderError: The provider call failed.
            SpecValidationError: The normalized draft is not a valid document.
            NotFoundError: *category_id* does not exist.
        """
        _require_pdf(pdf_bytes)
        self._require_category(category_id)
        request = self.resolve_request(provider, pdf_bytes, name, version, description)
        draft = self.registry.generate(request)

        normalized = normalize(draft)
        parsed = parse_or_fail(normalized)
        logger.info(
            "Draft from %s parsed: %d operation(s)", provider.value, parsed.operation_count
        )
        return self._upsert(
            name=name,
            slug=slug,
            version=version,
            description=description,
            category_id=category_id,
            spec_text=normalized,
            parsed=parsed,
            source=DocumentSource.IMPORTED,
        )

    # ------------------------------------------------------------------ #
    # Raw spec path
    # ------------------------------------------------------------------ #

    def import_spec(
        self,
        name: str,
        slug: str,
        version: str,
        description: Optional[str],
        spec_text: str,
        category_id: Optional[int] = None,
    ) -> Document:
        """Validate raw JSON/YAML text and store it as a document with its index."""
        parsed = parse_or_fail(spec_text)
        self._require_category(category_id)
        return self._upsert(
            name=name,
            slug=slug,
            version=version,
            description=description,
            category_id=category_id,
            spec_text=spec_text,
            parsed=parsed,
            source=DocumentSource.MANUAL,
        )

    def update_spec(self, document_id: int, spec_text: str) -> Document:
        """Replace a document's spec text wholesale and rebuild its index."""
        self.get_document(document_id)
        parsed = parse_or_fail(spec_text)
        with self.store.transaction():
            document = self.store.update_document_spec(
                document_id,
                spec_text=spec_text,
                spec_format=_spec_format(spec_text),
                spec_hash=_hash(spec_text),
            )
            self.indexer.reindex(document_id, parsed, atomic=False)
        logger.info("Updated spec of document %s", document_id)
        return document

    def upload_spec(self, document_id: int, data: bytes) -> Document:
        """Decode an uploaded file as UTF-8 and apply it with :meth:`update_spec`."""
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise SpecValidationError([f"Cannot read file: not valid UTF-8 ({exc.reason})"]) from exc
        return self.update_spec(document_id, text)

    def reindex(self, document_id: int) -> int:
        """Re-derive the endpoint index from the stored spec text."""
        document = self.get_document(document_id)
        parsed = parse_or_fail(document.spec_text)
        return self.indexer.reindex(document_id, parsed)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_document(self, document_id: int) -> Document:
        document = self.store.get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document not found: {document_id}")
        return document

    def get_spec_payload(self, document_id: int) -> SpecPayload:
        raw = self.get_document(document_id).spec_text
        return SpecPayload(raw=raw, content_type=detect_content_kind(raw).mime_type)

    def list_endpoints(
        self, document_id: int, method: Optional[HTTPMethod] = None
    ) -> list[EndpointIndexEntry]:
        self.get_document(document_id)
        return self.store.list_endpoints(document_id, method)

    # ------------------------------------------------------------------ #
    # Metadata
    # ------------------------------------------------------------------ #

    def create_category(
        self, name: str, slug: str, sort_order: Optional[int] = None
    ) -> Category:
        try:
            with self.store.transaction():
                return self.store.create_category(name, slug, sort_order)
        except sqlite3.IntegrityError as exc:
            raise InvalidUsageError(f"Category slug already exists: {slug}") from exc

    def update_status(self, document_id: int, status: str | DocumentStatus) -> Document:
        document = self.get_document(document_id)
        try:
            new_status = DocumentStatus(str(getattr(status, "value", status)).lower())
        except ValueError as exc:
            raise InvalidUsageError(
                f"Invalid status value: {status}. Allowed: draft, published, archived"
            ) from exc

        fields: dict[str, Any] = {"status": new_status}
        if new_status is DocumentStatus.PUBLISHED and document.published_at is None:
            fields["published_at"] = datetime.now(timezone.utc)
        with self.store.transaction():
            return self.store.update_document_meta(document_id, **fields)

    def update_meta(
        self,
        document_id: int,
        *,
        name: Optional[str] = None,
        slug: Optional[str] = None,
        version: Optional[str] = None,
        description: Optional[str] = None,
        category_id: Optional[int] = None,
    ) -> Document:
        """Update the given metadata fields; ``None`` leaves a field unchanged."""
        self.get_document(document_id)
        fields: dict[str, Any] = {}
        if slug is not None and slug.strip():
            other = self.store.get_document_by_slug(slug)
            if other is not None and other.id != document_id:
                raise InvalidUsageError(f"Slug already exists: {slug}")
            fields["slug"] = slug
        if name is not None:
            fields["name"] = name
        if version is not None:
            fields["version"] = version
        if description is not None:
            fields["description"] = description
        if category_id is not None:
            self._require_category(category_id)
            fields["category_id"] = category_id
        with self.store.transaction():
            return self.store.update_document_meta(document_id, **fields)

    def delete_document(self, document_id: int) -> None:
        self.get_document(document_id)
        with self.store.transaction():
            self.store.delete_endpoints(document_id)
            self.store.delete_document(document_id)
        logger.info("Deleted document %s", document_id)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _upsert(
        self,
        *,
        name: str,
        slug: str,
        version: str,
        description: Optional[str],
        category_id: Optional[int],
        spec_text: str,
        parsed: ParsedSpec,
        source: DocumentSource,
    ) -> Document:
        spec_format = _spec_format(spec_text)
        with self.store.transaction():
            existing = self.store.get_document_by_slug(slug)
            if existing is not None:
                self.store.update_document_spec(
                    existing.id,
                    spec_text=spec_text,
                    spec_format=spec_format,
                    spec_hash=_hash(spec_text),
                    source=source,
                )
                meta: dict[str, Any] = {"name": name, "version": version}
                if description is not None:
                    meta["description"] = description
                if category_id is not None:
                    meta["category_id"] = category_id
                document = self.store.update_document_meta(existing.id, **meta)
                logger.info("Replaced spec of existing document '%s' (%s)", slug, existing.id)
            else:
                document = self.store.insert_document(
                    name=name,
                    slug=slug,
                    version=version,
                    description=description,
                    category_id=category_id,
                    spec_text=spec_text,
                    spec_format=spec_format,
                    spec_hash=_hash(spec_text),
                    source=source,
                )
                logger.info("Created document '%s' (%s)", slug, document.id)
            self.indexer.reindex(document.id, parsed, atomic=False)
        return document

    def _require_category(self, category_id: Optional[int]) -> None:
        if category_id is not None and self.store.get_category(category_id) is None:
            raise NotFoundError(f"Category not found: {category_id}")


def _require_pdf(pdf_bytes: bytes) -> None:
    if not pdf_bytes:
        raise InvalidUsageError("PDF content is empty")


def _spec_format(text: str) -> SpecFormat:
    if detect_content_kind(text) is ContentKind.JSON:
        return SpecFormat.JSON
    return SpecFormat.YAML


def _hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
