"""Numeric process exit codes for the ``apidex`` command line.

Each constant maps to one error category and is referenced by the
corresponding :class:`~apidex.exceptions.ApidexError` subclass, so shell
wrappers and CI jobs can tell a rejected document from a provider outage
without parsing stderr.

Example::

    $ apidex import-pdf contract.pdf --provider gemini --name Billing --slug billing
    $ echo $?
    9   # EXIT_CONFIGURATION_ERROR -- gemini credential is not configured
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or values."""

EXIT_NOT_FOUND = 4
"""A referenced document or category does not exist."""

EXIT_PROVIDER_ERROR = 5
"""An LLM provider returned an error status or an unusable response."""

EXIT_SPEC_VALIDATION_ERROR = 7
"""The specification text could not be parsed or failed validation."""

EXIT_INDEX_ERROR = 8
"""The endpoint index could not be rebuilt; the previous index was kept."""

EXIT_CONFIGURATION_ERROR = 9
"""A required setting (e.g. a provider credential) is missing."""
