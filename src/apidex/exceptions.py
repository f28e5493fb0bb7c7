"""Exception hierarchy for apidex.

All exceptions inherit from :class:`ApidexError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apidex.exit_codes`.
Callers branch on the exception type rather than on message text; the CLI
entry point in :func:`apidex.app.main` maps each type to its exit code.

Subclass hierarchy::

    ApidexError (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- NotFoundError          (exit 4)
    +-- ProviderError          (exit 5)
    +-- SpecValidationError    (exit 7)
    +-- IndexConsistencyError  (exit 8)
    +-- ConfigurationError     (exit 9)
"""

from __future__ import annotations

from typing import Optional

from apidex.exit_codes import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INDEX_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PROVIDER_ERROR,
    EXIT_SPEC_VALIDATION_ERROR,
)


class ApidexError(Exception):
    """Base exception for all apidex errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ApidexError):
    """Raised for invalid arguments (bad status value, duplicate slug, non-PDF input)."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(ApidexError):
    """Raised when a document or category id does not exist in the store."""

    exit_code = EXIT_NOT_FOUND


class ConfigurationError(ApidexError):
    """Raised for missing or blank settings and for unregistered providers.

    Never retried. ``setting`` names the missing configuration key when one
    applies (e.g. ``"gemini.api_key"``).
    """

    exit_code = EXIT_CONFIGURATION_ERROR

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(message)
        self.setting = setting


class SpecValidationError(ApidexError):
    """Raised when specification text fails syntax, structure, or ``$ref`` checks.

    Every diagnostic reported while parsing is kept in ``diagnostics``; the
    message joins them with ``"; "``.
    """

    exit_code = EXIT_SPEC_VALIDATION_ERROR

    def __init__(self, diagnostics: list[str]):
        self.diagnostics = list(diagnostics) or ["Cannot parse OpenAPI spec"]
        super().__init__("Invalid OpenAPI: " + "; ".join(self.diagnostics))


class ProviderError(ApidexError):
    """Raised on a non-success provider response or an unusable response body.

    ``status_code`` and ``body`` are the verbatim HTTP status and response
    text when the failure came from an HTTP exchange, ``None`` otherwise.
    """

    exit_code = EXIT_PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class IndexConsistencyError(ApidexError):
    """Raised when the delete-then-insert reindex sequence fails and is rolled back."""

    exit_code = EXIT_INDEX_ERROR
