"""Shared test fixtures for apidex.

Provides reusable fixtures for loading spec fixtures, creating isolated
config environments, opening throw-away SQLite stores, building services
whose providers talk to :class:`httpx.MockTransport`, and running CLI
commands. These fixtures are automatically discovered by pytest.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from apidex.index import SQLiteDocumentStore
from apidex.models import ParsedSpec, ProviderConfig, ProviderId, Settings
from apidex.output import reset_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"

_MINIMAL_PDF = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< >>\n%%EOF\n"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Spec fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_text() -> str:
    """Raw petstore 3.0 JSON text."""
    return (FIXTURES_DIR / "petstore_3.0.json").read_text(encoding="utf-8")


@pytest.fixture
def petstore_raw(petstore_text: str) -> dict[str, Any]:
    return json.loads(petstore_text)


@pytest.fixture
def inventory_text() -> str:
    """Raw inventory 3.1 YAML text (contains a ``trace`` operation)."""
    return (FIXTURES_DIR / "inventory.yaml").read_text(encoding="utf-8")


@pytest.fixture
def llm_draft_text() -> str:
    """A provider draft wrapped in a fence, with prose and escaped slashes."""
    return (FIXTURES_DIR / "llm_draft.txt").read_text(encoding="utf-8")


@pytest.fixture
def pdf_bytes() -> bytes:
    """A tiny but well-formed PDF."""
    return _MINIMAL_PDF


@pytest.fixture
def petstore_spec(petstore_text: str) -> ParsedSpec:
    from apidex.parser import parse_or_fail

    return parse_or_fail(petstore_text)


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store(tmp_path: Path) -> SQLiteDocumentStore:
    """A fresh SQLite store in ``tmp_path``, closed after the test."""
    db = SQLiteDocumentStore(tmp_path / "apidex.db")
    yield db
    db.close()


# ---------------------------------------------------------------------------
# Provider fixtures
# ---------------------------------------------------------------------------


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it receives."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def recording_transport() -> Callable[..., RecordingTransport]:
    """Factory for a MockTransport that records requests.

    Usage::

        transport = recording_transport(lambda request: httpx.Response(200, json={}))
        ...
        assert len(transport.requests) == 1
    """
    return RecordingTransport


@pytest.fixture
def settings() -> Settings:
    """Settings with a literal credential for every provider."""
    return Settings(
        providers={
            ProviderId.OPENAI: ProviderConfig(api_key="sk-openai-test"),
            ProviderId.OPENROUTER: ProviderConfig(api_key="sk-or-test"),
            ProviderId.GEMINI: ProviderConfig(api_key="gemini-test-key"),
        }
    )


@pytest.fixture
def make_service(store: SQLiteDocumentStore, settings: Settings):
    """Factory building a DocumentService whose providers use a mock transport.

    Usage::

        transport = recording_transport(handler)
        service = make_service(transport)
    """
    from apidex.providers import ProviderRegistry
    from apidex.service import DocumentService

    def _make(
        transport: httpx.BaseTransport | None = None,
        service_settings: Settings | None = None,
    ) -> DocumentService:
        effective = service_settings or settings
        registry = ProviderRegistry.default(effective, transport=transport)
        return DocumentService(store, registry, effective)

    return _make


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and data to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    so that tests never touch real user config or databases, and clears all
    APIDEX_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("apidex.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["APIDEX_DB_PATH", "APIDEX_REQUEST_TIMEOUT"]:
        monkeypatch.delenv(var, raising=False)
    for provider_id in ProviderId:
        for field in ("API_URL", "API_KEY", "MODEL"):
            monkeypatch.delenv(f"APIDEX_{provider_id.name}_{field}", raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
