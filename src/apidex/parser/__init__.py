"""OpenAPI parser -- load, validate, resolve ``$ref`` pointers, and extract operations.

This sub-package turns normalized specification text (JSON or YAML) into a
:class:`~apidex.models.ParsedSpec` that the endpoint indexer can consume.

Typical usage::

    from apidex.parser import parse_or_fail

    parsed = parse_or_fail(text)
    for path, method, op in parsed.operations():
        ...

Sub-modules:

* :mod:`~apidex.parser.loader` -- content-kind detection, JSON/YAML
  decoding, OpenAPI version checks, and file reading.
* :mod:`~apidex.parser.resolver` -- recursive ``$ref`` resolution with
  circular-reference detection.
* :mod:`~apidex.parser.validator` -- structural checks and
  :func:`parse_or_fail`, the aggregated-diagnostics entry point.
* :mod:`~apidex.parser.extractor` -- walks the resolved document and
  builds the :class:`~apidex.models.ParsedSpec`.
"""

from apidex.parser.loader import detect_content_kind, load_document, validate_openapi_version
from apidex.parser.validator import collect_structural_diagnostics, parse_or_fail

__all__ = [
    "collect_structural_diagnostics",
    "detect_content_kind",
    "load_document",
    "parse_or_fail",
    "validate_openapi_version",
]
