"""Read specification text and turn it into a raw OpenAPI dictionary.

This module handles the syntax layer of the pipeline: classifying raw text
as JSON or YAML-ish, decoding it with the matching parser, and checking the
declared ``openapi`` version. Structural checks and ``$ref`` resolution
happen afterwards in :mod:`apidex.parser.validator` and
:mod:`apidex.parser.resolver`.

Public functions:

* :func:`detect_content_kind` -- the ``{...}`` / ``[...]`` heuristic.
* :func:`load_document` -- decode text into a dict or raise
  :class:`~apidex.exceptions.SpecValidationError`.
* :func:`validate_openapi_version` -- return the version string or a
  diagnostic.
* :func:`read_spec_file` / :func:`read_pdf_file` -- file I/O used by the CLI.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import yaml

from apidex.exceptions import InvalidUsageError, SpecValidationError
from apidex.models import ContentKind

_PDF_MAGIC = b"%PDF-"


def detect_content_kind(text: Optional[str]) -> ContentKind:
    """Classify *text* as JSON or YAML-or-plain-text.

    Trimmed text bounded by ``{...}`` or ``[...]`` is JSON; everything else,
    including ``None``, is YAML-or-text. This is a heuristic and says
    nothing about validity.
    """
    if text is None:
        return ContentKind.YAML_OR_TEXT
    stripped = text.strip()
    if (stripped.startswith("{") and stripped.endswith("}")) or (
        stripped.startswith("[") and stripped.endswith("]")
    ):
        return ContentKind.JSON
    return ContentKind.YAML_OR_TEXT


def load_document(text: Optional[str]) -> dict[str, Any]:
    """Decode specification text into a dictionary.

    JSON-shaped text is decoded with :mod:`json` first and falls back to
    YAML (every JSON document is also YAML, but JSON errors are the more
    precise ones). Other text goes straight to ``yaml.safe_load``.

    Args:
        text: The raw (ideally normalized) specification text.

    Returns:
        The decoded document.

    Raises:
        SpecValidationError: If the text is empty, is not well-formed in
            either syntax, or does not decode to a mapping.
    """
    if text is None or not text.strip():
        raise SpecValidationError(["Specification text is empty"])

    json_error: Exception | None = None
    if detect_content_kind(text) is ContentKind.JSON:
        try:
            return _require_mapping(json.loads(text))
        except json.JSONDecodeError as exc:
            json_error = exc

    try:
        result = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        diagnostics = []
        if json_error is not None:
            diagnostics.append(f"Invalid JSON: {json_error}")
        diagnostics.append(f"Invalid YAML: {_one_line(exc)}")
        raise SpecValidationError(diagnostics) from exc

    if json_error is not None and not isinstance(result, dict):
        raise SpecValidationError([f"Invalid JSON: {json_error}"])
    return _require_mapping(result)


def validate_openapi_version(spec: dict[str, Any], diagnostics: list[str]) -> Optional[str]:
    """Return the OpenAPI version string, appending a diagnostic if it is unusable.

    Only OpenAPI 3.x documents are accepted. Swagger 2.x documents and
    missing or non-3.x ``openapi`` values add one diagnostic and return
    ``None``.
    """
    if "swagger" in spec:
        diagnostics.append(
            f"Swagger {spec['swagger']} is not supported; "
            "only OpenAPI 3.0.x and 3.1.x documents are accepted"
        )
        return None

    openapi_version = spec.get("openapi")
    if openapi_version is None:
        diagnostics.append("attribute openapi is missing")
        return None

    version_str = str(openapi_version)
    if not version_str.startswith("3."):
        diagnostics.append(f"Unsupported OpenAPI version: {version_str}")
        return None
    return version_str


def read_spec_file(path: str | Path) -> str:
    """Read a ``.json`` / ``.yaml`` / ``.yml`` specification file as UTF-8 text.

    Raises:
        InvalidUsageError: If the file is missing, unreadable, or empty.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise InvalidUsageError(f"Spec file not found: {path}")
    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InvalidUsageError(f"Failed to read spec file {path}: {exc}") from exc
    if not content.strip():
        raise InvalidUsageError(f"Spec file is empty: {path}")
    return content


def read_pdf_file(path: str | Path) -> bytes:
    """Read a PDF file's bytes, rejecting anything that is not a PDF.

    Raises:
        InvalidUsageError: If the file is missing, empty, or lacks the
            ``%PDF-`` header.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise InvalidUsageError(f"PDF file not found: {path}")
    data = file_path.read_bytes()
    if not data:
        raise InvalidUsageError(f"PDF file is empty: {path}")
    if not data.startswith(_PDF_MAGIC):
        raise InvalidUsageError(f"Only PDF files are accepted: {path}")
    return data


def _require_mapping(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise SpecValidationError([f"Spec must be a JSON/YAML object (got {kind})"])
    return result


def _one_line(exc: Exception) -> str:
    return " ".join(str(exc).split())
