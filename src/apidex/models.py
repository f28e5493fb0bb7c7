"""Canonical Pydantic models shared across all apidex modules.

This is the single source of truth for data shapes in the project. The
models fall into four groups:

**Parser output models** -- produced by :mod:`apidex.parser` from a
validated OpenAPI document:
    :class:`HTTPMethod`, :class:`ContentKind`, :class:`APIParameter`,
    :class:`RequestBodyInfo`, :class:`ResponseInfo`, :class:`SecurityScheme`,
    :class:`Operation`, :class:`APIInfo`, :class:`ServerInfo`, and
    :class:`ParsedSpec`.

**Index models** -- derived rows written by :mod:`apidex.index`:
    :class:`EndpointIndexEntry`.

**Provider models** -- per-call and per-provider settings for draft
generation:
    :class:`ProviderId`, :class:`LlmGenerateRequest`,
    :class:`ProviderConfig`, and :class:`Settings`.

**Document models** -- rows owned by the storage layer:
    :class:`Category`, :class:`Document`, :class:`SpecPayload` and their
    enums.
"""

from __future__ import annotations

import enum
import json
from datetime import datetime
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from apidex.exceptions import ConfigurationError


# --- Parser Output Models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods that produce an index entry.

    ``trace`` path-item keys are deliberately absent: they are ignored by the
    extractor and never reach the index.
    """

    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"
    PATCH = "patch"
    HEAD = "head"
    OPTIONS = "options"


class ContentKind(str, enum.Enum):
    """Heuristic classification of raw specification text."""

    JSON = "json"
    YAML_OR_TEXT = "yaml-or-text"

    @property
    def mime_type(self) -> str:
        """MIME type used when re-serving the raw text to a viewer."""
        if self is ContentKind.JSON:
            return "application/json"
        return "text/plain"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"


class APIParameter(BaseModel):
    """A single parameter extracted from an OpenAPI operation."""

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_type: str = Field(default="string", description="JSON Schema type")
    schema_format: Optional[str] = None
    default: Any = None
    enum_values: Optional[list[Any]] = None
    example: Any = None


class RequestBodyInfo(BaseModel):
    """Parsed request body metadata for an :class:`Operation`."""

    required: bool = False
    description: Optional[str] = None
    content_types: list[str] = Field(default_factory=list)
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")

    model_config = {"populate_by_name": True}


class ResponseInfo(BaseModel):
    """Parsed response metadata for a single HTTP status code."""

    status_code: str
    description: Optional[str] = None
    content_types: list[str] = Field(default_factory=list)
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")

    model_config = {"populate_by_name": True}


class SecurityScheme(BaseModel):
    """An OpenAPI *Security Scheme Object* extracted from ``components``.

    The ``type`` field discriminates between ``apiKey``, ``http``, ``oauth2``,
    and ``openIdConnect`` schemes. Only the fields relevant to the active
    scheme type are populated.
    """

    name: str
    type: str
    description: Optional[str] = None
    # apiKey
    key_name: Optional[str] = None
    location: Optional[str] = None
    # http
    scheme: Optional[str] = None
    bearer_format: Optional[str] = None
    # oauth2
    flows: Optional[dict[str, Any]] = None
    # openIdConnect
    openid_connect_url: Optional[str] = None


class Operation(BaseModel):
    """A single parsed API operation.

    An operation belongs to exactly one ``(path, method)`` pair of its
    :class:`ParsedSpec`. Parameters, request body, and responses are only of
    interest to the parser; the indexer reads the identity fields, tags,
    deprecation flag, and security requirements.
    """

    path: str
    method: HTTPMethod
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parameters: list[APIParameter] = Field(default_factory=list)
    request_body: Optional[RequestBodyInfo] = None
    responses: list[ResponseInfo] = Field(default_factory=list)
    security: Optional[list[dict[str, list[str]]]] = Field(
        default=None,
        description="Effective security requirements; None when the document declares none",
    )
    deprecated: bool = False


class APIInfo(BaseModel):
    """API metadata extracted from the OpenAPI *Info Object*."""

    title: str = "Untitled API"
    version: str = "0.0.0"
    description: Optional[str] = None


class ServerInfo(BaseModel):
    """A server entry from the document's ``servers`` array."""

    url: str
    description: Optional[str] = None


class ParsedSpec(BaseModel):
    """Complete, reference-resolved representation of an OpenAPI document.

    ``paths`` preserves the document's path order and maps each path to the
    operations declared on it, keyed by :class:`HTTPMethod`.
    """

    openapi_version: str
    info: APIInfo = Field(default_factory=APIInfo)
    servers: list[ServerInfo] = Field(default_factory=list)
    paths: dict[str, dict[HTTPMethod, Operation]] = Field(default_factory=dict)
    security_schemes: dict[str, SecurityScheme] = Field(default_factory=dict)
    components: dict[str, Any] = Field(default_factory=dict)

    def operations(self) -> Iterator[tuple[str, HTTPMethod, Operation]]:
        """Iterate ``(path, method, operation)`` triples in document order."""
        for path, methods in self.paths.items():
            for method, operation in methods.items():
                yield path, method, operation

    @property
    def operation_count(self) -> int:
        return sum(len(methods) for methods in self.paths.values())


# --- Index Models ---


class EndpointIndexEntry(BaseModel):
    """One derived index row for a ``(document_id, method, path)`` triple.

    ``tags_json`` and ``security_json`` hold the serialized tag list and
    security requirements exactly as stored.
    """

    model_config = ConfigDict(frozen=True)

    document_id: int
    method: HTTPMethod
    path: str
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    tags_json: str = "[]"
    deprecated: bool = False
    security_json: Optional[str] = None

    @property
    def tags(self) -> list[str]:
        return json.loads(self.tags_json) if self.tags_json else []

    @property
    def key(self) -> tuple[int, str, str]:
        """Uniqueness key of the row within the index."""
        return self.document_id, self.method.value, self.path


# --- Provider Models ---


class ProviderId(str, enum.Enum):
    """Identity of a draft-generation provider."""

    OPENAI = "openai"
    OPENROUTER = "openrouter"
    GEMINI = "gemini"


class LlmGenerateRequest(BaseModel):
    """Everything a provider needs for one "PDF to draft spec" call.

    Built per call by :class:`~apidex.service.DocumentService` and never
    persisted. Blank ``api_url`` / ``model`` fall back to the provider's
    documented defaults.
    """

    provider: Optional[ProviderId] = None
    api_url: Optional[str] = None
    api_key: Optional[str] = Field(default=None, repr=False)
    model: Optional[str] = None
    referer: Optional[str] = None
    app_title: Optional[str] = None
    pdf_bytes: bytes = Field(default=b"", repr=False)
    title: str = "Untitled API"
    version: str = "1.0.0"
    description: Optional[str] = None
    options: dict[str, Any] = Field(default_factory=dict)


class ProviderConfig(BaseModel):
    """Immutable per-provider settings, validated when the provider is selected."""

    model_config = ConfigDict(frozen=True)

    api_url: Optional[str] = None
    api_key: Optional[str] = Field(default=None, repr=False)
    model: Optional[str] = None
    referer: Optional[str] = Field(
        default=None, description="Optional HTTP-Referer header (OpenRouter attribution)"
    )
    app_title: Optional[str] = Field(
        default=None, description="Optional X-Title header (OpenRouter attribution)"
    )


class Settings(BaseModel):
    """User-wide settings persisted at ``~/.config/apidex/config.json``.

    Loaded by :func:`~apidex.config.load_settings`, which layers environment
    variables over the file. Provider defaults for URL and model are applied
    by the strategies themselves, so blank values here are legal.

    ``providers`` keeps each provider's block as written. A block is only
    checked against :class:`ProviderConfig` by :meth:`provider`, so a broken
    entry for one provider never blocks the others.
    """

    db_path: Optional[str] = Field(
        default=None, description="SQLite database path; defaults to the data directory"
    )
    request_timeout: float = Field(
        default=120.0, description="Timeout in seconds for every provider HTTP call"
    )
    providers: dict[ProviderId, Any] = Field(
        default_factory=lambda: {pid: {} for pid in ProviderId}
    )

    @field_validator("providers", mode="before")
    @classmethod
    def _dump_configs(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {
            key: block.model_dump() if isinstance(block, ProviderConfig) else block
            for key, block in value.items()
        }

    @field_validator("providers")
    @classmethod
    def _fill_missing(cls, value: dict[ProviderId, Any]) -> dict[ProviderId, Any]:
        return {pid: value.get(pid, {}) for pid in ProviderId}

    def provider(self, provider_id: ProviderId) -> ProviderConfig:
        """Validate and return the settings block of *provider_id*.

        Raises:
            ConfigurationError: If the block is not an object or holds a
                value of the wrong type.
        """
        block = self.providers.get(provider_id) or {}
        if not isinstance(block, dict):
            raise ConfigurationError(
                f"Invalid settings for provider {provider_id.value}: expected an object",
                setting=provider_id.value,
            )
        try:
            return ProviderConfig.model_validate(block)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid settings for provider {provider_id.value}: {exc}",
                setting=provider_id.value,
            ) from exc


# --- Document Models ---


class DocumentStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class SpecFormat(str, enum.Enum):
    JSON = "json"
    YAML = "yaml"


class DocumentSource(str, enum.Enum):
    MANUAL = "manual"
    IMPORTED = "imported"


class Category(BaseModel):
    """A grouping that documents can be attached to."""

    id: int
    name: str
    slug: str
    sort_order: Optional[int] = None


class Document(BaseModel):
    """A stored specification document and its metadata."""

    id: int
    category_id: Optional[int] = None
    name: str
    slug: str
    version: str
    description: Optional[str] = None
    status: DocumentStatus = DocumentStatus.DRAFT
    spec_format: SpecFormat = SpecFormat.JSON
    spec_text: str = ""
    spec_hash: Optional[str] = None
    source: DocumentSource = DocumentSource.MANUAL
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SpecPayload(BaseModel):
    """Raw spec text with the content type to serve it under."""

    raw: str
    content_type: str
