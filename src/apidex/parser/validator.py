"""Structural validation and the single ``text -> ParsedSpec`` entry point.

:func:`parse_or_fail` runs the whole parser pipeline and either returns a
:class:`~apidex.models.ParsedSpec` or raises one
:class:`~apidex.exceptions.SpecValidationError` carrying every diagnostic
that was collected along the way.  It never returns a partially parsed
model and has no side effects, so it is safe to call repeatedly on the same
text.

The structural checks here cover what the extractor relies on.  They do not
validate JSON Schema bodies or business rules inside schemas.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from apidex.exceptions import SpecValidationError
from apidex.models import HTTPMethod, ParsedSpec
from apidex.parser.extractor import extract_spec
from apidex.parser.loader import load_document, validate_openapi_version
from apidex.parser.resolver import resolve_refs

logger = logging.getLogger(__name__)

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)


def parse_or_fail(text: Optional[str]) -> ParsedSpec:
    """Parse, validate, and resolve specification text.

    Args:
        text: Normalized JSON or YAML specification text.

    Returns:
        The structured, reference-resolved specification.

    Raises:
        SpecValidationError: If the text is not well-formed, is not an
            OpenAPI 3.x document, violates a structural requirement, or
            contains an unresolvable ``$ref``.  The ``diagnostics``
            attribute lists every problem found.
    """
    raw = load_document(text)

    diagnostics: list[str] = []
    version = validate_openapi_version(raw, diagnostics)
    resolved = resolve_refs(raw, diagnostics)
    # Referenced components are checked where they are used
    diagnostics.extend(collect_structural_diagnostics(resolved))

    if diagnostics or version is None:
        raise SpecValidationError(diagnostics)

    try:
        parsed = extract_spec(resolved, version)
    except ValidationError as exc:
        raise SpecValidationError(_pydantic_messages(exc)) from exc
    logger.debug(
        "Parsed OpenAPI %s document with %d path(s) and %d operation(s)",
        version,
        len(parsed.paths),
        parsed.operation_count,
    )
    return parsed


def collect_structural_diagnostics(raw: dict[str, Any]) -> list[str]:
    """Return one message per structural problem in the document.

    A missing ``info`` object or a missing ``responses`` map is tolerated:
    generated drafts often leave them out and nothing downstream needs them.
    Every field the extractor copies into the model is type-checked here, so
    a document that passes never fails later with a model error.
    """
    diagnostics: list[str] = []

    if "info" not in raw:
        logger.debug("Document has no info object; defaults will be used")
    elif not isinstance(raw["info"], dict):
        diagnostics.append("attribute info is not of type `object`")

    _check_servers(raw.get("servers"), "servers", diagnostics)
    _check_security(raw.get("security"), "security", diagnostics)

    components = raw.get("components")
    if components is not None:
        if not isinstance(components, dict):
            diagnostics.append("attribute components is not of type `object`")
        elif components.get("securitySchemes") is not None:
            _check_security_schemes(components["securitySchemes"], diagnostics)

    paths = raw.get("paths")
    if paths is None:
        return diagnostics
    if not isinstance(paths, dict):
        diagnostics.append("attribute paths is not of type `object`")
        return diagnostics

    for path, path_item in paths.items():
        if not isinstance(path, str) or not path.startswith("/"):
            diagnostics.append(f"paths key '{path}' must start with '/'")
            continue
        if not isinstance(path_item, dict):
            diagnostics.append(f"paths.'{path}' is not of type `object`")
            continue
        _check_parameters(path_item.get("parameters"), f"paths.'{path}'.parameters", diagnostics)
        for key, operation in path_item.items():
            if key in _HTTP_METHODS:
                _check_operation(operation, f"paths.'{path}'.{key}", diagnostics)

    return diagnostics


def _check_operation(operation: Any, where: str, diagnostics: list[str]) -> None:
    if not isinstance(operation, dict):
        diagnostics.append(f"{where} is not of type `object`")
        return

    tags = operation.get("tags")
    if tags is not None and (
        not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags)
    ):
        diagnostics.append(f"{where}.tags is not a list of strings")

    deprecated = operation.get("deprecated")
    if deprecated is not None and not isinstance(deprecated, bool):
        diagnostics.append(f"{where}.deprecated is not of type `boolean`")

    _check_strings(operation, ("operationId", "summary", "description"), where, diagnostics)
    _check_parameters(operation.get("parameters"), f"{where}.parameters", diagnostics)
    _check_security(operation.get("security"), f"{where}.security", diagnostics)

    responses = operation.get("responses")
    if responses is None:
        logger.debug("%s has no responses", where)
    elif not isinstance(responses, dict):
        diagnostics.append(f"{where}.responses is not of type `object`")
    else:
        for status_code, response in responses.items():
            if str(status_code).startswith("x-"):
                continue
            _check_body(response, f"{where}.responses.'{status_code}'", diagnostics)

    body = operation.get("requestBody")
    if body is not None:
        _check_body(body, f"{where}.requestBody", diagnostics)


def _check_body(body: Any, where: str, diagnostics: list[str]) -> None:
    """Check a request body or response object."""
    if not isinstance(body, dict):
        diagnostics.append(f"{where} is not of type `object`")
        return
    _check_strings(body, ("description",), where, diagnostics)
    content = body.get("content")
    if content is not None and not isinstance(content, dict):
        diagnostics.append(f"{where}.content is not of type `object`")


def _check_parameters(parameters: Any, where: str, diagnostics: list[str]) -> None:
    if parameters is None:
        return
    if not isinstance(parameters, list):
        diagnostics.append(f"{where} is not of type `array`")
        return
    for index, param in enumerate(parameters):
        item = f"{where}[{index}]"
        if not isinstance(param, dict):
            diagnostics.append(f"{item} is not of type `object`")
            continue
        if "$ref" in param:
            continue
        if "name" not in param or "in" not in param:
            diagnostics.append(f"{item} is missing name or in")
        _check_strings(param, ("name", "in", "description"), item, diagnostics)

        schema = param.get("schema")
        if schema is None:
            continue
        if not isinstance(schema, dict):
            diagnostics.append(f"{item}.schema is not of type `object`")
            continue
        _check_strings(schema, ("format",), f"{item}.schema", diagnostics)
        enum = schema.get("enum")
        if enum is not None and not isinstance(enum, list):
            diagnostics.append(f"{item}.schema.enum is not of type `array`")


def _check_servers(servers: Any, where: str, diagnostics: list[str]) -> None:
    if servers is None:
        return
    if not isinstance(servers, list):
        diagnostics.append(f"attribute {where} is not of type `array`")
        return
    for index, server in enumerate(servers):
        if not isinstance(server, dict) or "url" not in server:
            diagnostics.append(f"{where}[{index}] must be an object with a url")
        else:
            _check_strings(server, ("url", "description"), f"{where}[{index}]", diagnostics)


def _check_security(security: Any, where: str, diagnostics: list[str]) -> None:
    if security is None:
        return
    if not isinstance(security, list):
        diagnostics.append(f"attribute {where} is not of type `array`")
        return
    for index, requirement in enumerate(security):
        if not isinstance(requirement, dict) or not all(
            isinstance(scopes, list) and all(isinstance(s, str) for s in scopes)
            for scopes in requirement.values()
        ):
            diagnostics.append(f"{where}[{index}] must map scheme names to lists of scopes")


def _check_security_schemes(schemes: Any, diagnostics: list[str]) -> None:
    if not isinstance(schemes, dict):
        diagnostics.append("attribute components.securitySchemes is not of type `object`")
        return
    for name, scheme in schemes.items():
        where = f"components.securitySchemes.{name}"
        if not isinstance(scheme, dict):
            diagnostics.append(f"{where} is not of type `object`")
            continue
        if "$ref" in scheme:
            continue
        _check_strings(
            scheme,
            ("description", "name", "in", "scheme", "bearerFormat", "openIdConnectUrl"),
            where,
            diagnostics,
        )
        flows = scheme.get("flows")
        if flows is not None and not isinstance(flows, dict):
            diagnostics.append(f"{where}.flows is not of type `object`")


def _check_strings(
    obj: dict[str, Any], fields: tuple[str, ...], where: str, diagnostics: list[str]
) -> None:
    for field in fields:
        value = obj.get(field)
        if value is not None and not isinstance(value, str):
            diagnostics.append(f"{where}.{field} is not of type `string`")


def _pydantic_messages(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
