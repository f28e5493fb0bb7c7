"""Extract operations, parameters, and security schemes from resolved OpenAPI documents.

This module walks a fully ``$ref``-resolved OpenAPI dictionary and builds a
:class:`~apidex.models.ParsedSpec` containing every API operation,
parameter, request body, response definition, and security scheme declared
in the document.

The single public entry point is :func:`extract_spec`.  Internally it
delegates to private helpers that each handle one section of the OpenAPI
structure:

* ``_extract_info`` -- the ``info`` object (title, version, description).
* ``_extract_servers`` -- the ``servers`` array.
* ``_extract_paths`` -- the ``paths`` object, iterating over every
  path + HTTP method combination in document order.
* ``_extract_security_schemes`` -- the ``components/securitySchemes`` map.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they
share the same ``name`` and ``in`` values.

The extractor assumes :func:`~apidex.parser.validator.parse_or_fail` has
already rejected structurally broken documents; it never raises.
"""

from __future__ import annotations

from typing import Any, Optional

from apidex.models import (
    APIInfo,
    APIParameter,
    HTTPMethod,
    Operation,
    ParameterLocation,
    ParsedSpec,
    RequestBodyInfo,
    ResponseInfo,
    SecurityScheme,
    ServerInfo,
)

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)


def extract_spec(spec: dict[str, Any], openapi_version: str) -> ParsedSpec:
    """Build a :class:`~apidex.models.ParsedSpec` from a resolved OpenAPI dict.

    Args:
        spec: The ``$ref``-resolved document, as returned by
            :func:`~apidex.parser.resolver.resolve_refs`.
        openapi_version: The validated version string (e.g. ``"3.0.3"``).

    Returns:
        A fully populated :class:`~apidex.models.ParsedSpec`.

    Example::

        diagnostics: list[str] = []
        resolved = resolve_refs(raw, diagnostics)
        parsed = extract_spec(resolved, "3.0.3")
        for path, method, op in parsed.operations():
            print(method.value.upper(), path, op.summary)
    """
    components = spec.get("components") or {}
    return ParsedSpec(
        openapi_version=openapi_version,
        info=_extract_info(spec),
        servers=_extract_servers(spec),
        paths=_extract_paths(spec),
        security_schemes=_extract_security_schemes(components),
        components=components,
    )


def _extract_info(spec: dict[str, Any]) -> APIInfo:
    info = spec.get("info") or {}
    description = info.get("description")
    return APIInfo(
        title=str(info.get("title") or "Untitled API"),
        version=str(info.get("version") or "0.0.0"),
        description=str(description) if description is not None else None,
    )


def _extract_servers(spec: dict[str, Any]) -> list[ServerInfo]:
    servers = spec.get("servers") or []
    return [
        ServerInfo(url=str(server.get("url", "/")), description=server.get("description"))
        for server in servers
        if isinstance(server, dict)
    ]


def _extract_paths(spec: dict[str, Any]) -> dict[str, dict[HTTPMethod, Operation]]:
    """Extract all operations from the document's ``paths`` object.

    Keys that are not one of the seven indexed HTTP methods (``parameters``,
    ``summary``, ``servers``, ``trace``, extensions) are skipped.  Paths
    without any operation are kept with an empty method mapping.

    Security requirements follow the OpenAPI override rule: an operation-level
    ``security`` array replaces the document-level one, and an explicit empty
    array ``[]`` means "no auth required".  When neither level declares
    anything the operation's ``security`` is ``None``.
    """
    paths = spec.get("paths") or {}
    global_security = spec.get("security")
    result: dict[str, dict[HTTPMethod, Operation]] = {}

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue

        path_params = path_item.get("parameters") or []
        methods: dict[HTTPMethod, Operation] = {}

        for key, operation in path_item.items():
            if key not in _HTTP_METHODS or not isinstance(operation, dict):
                continue
            method = HTTPMethod(key)

            merged_params = _merge_parameters(path_params, operation.get("parameters") or [])

            op_security = operation.get("security")
            security = op_security if op_security is not None else global_security

            methods[method] = Operation(
                path=path,
                method=method,
                operation_id=operation.get("operationId"),
                summary=operation.get("summary"),
                description=operation.get("description"),
                tags=[str(tag) for tag in operation.get("tags") or []],
                parameters=_extract_parameters(merged_params),
                request_body=_extract_request_body(operation.get("requestBody")),
                responses=_extract_responses(operation.get("responses") or {}),
                security=security,
                deprecated=operation.get("deprecated") is True,
            )

        result[path] = methods

    return result


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field).
    """
    op_keys = {
        (param.get("name", ""), param.get("in", ""))
        for param in op_params
        if isinstance(param, dict)
    }

    merged: list[dict[str, Any]] = [
        param
        for param in path_params
        if isinstance(param, dict) and (param.get("name", ""), param.get("in", "")) not in op_keys
    ]
    merged.extend(param for param in op_params if isinstance(param, dict))
    return merged


def _extract_parameters(params_list: list[dict[str, Any]]) -> list[APIParameter]:
    """Convert raw parameter dicts into :class:`~apidex.models.APIParameter` models.

    Path parameters are always required regardless of the ``required``
    field.  Parameters with unrecognised ``in`` locations (or unresolved
    ``$ref`` placeholders) are skipped.
    """
    parameters: list[APIParameter] = []

    for param in params_list:
        try:
            location = ParameterLocation(param.get("in", "query"))
        except ValueError:
            continue

        schema = param.get("schema") or {}
        if not isinstance(schema, dict):
            schema = {}

        required = bool(param.get("required", False))
        if location == ParameterLocation.PATH:
            required = True

        parameters.append(
            APIParameter(
                name=str(param.get("name", "")),
                location=location,
                required=required,
                description=param.get("description"),
                schema_type=_extract_schema_type(schema),
                schema_format=schema.get("format"),
                default=schema.get("default"),
                enum_values=schema.get("enum"),
                example=param.get("example"),
            )
        )

    return parameters


def _extract_schema_type(schema: dict[str, Any]) -> str:
    """Return the schema's type, taking the first non-null entry of a 3.1 type array."""
    type_value = schema.get("type", "string")
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        return str(non_null[0]) if non_null else "string"
    return str(type_value)


def _first_schema(content: dict[str, Any]) -> Optional[dict[str, Any]]:
    for media in content.values():
        if isinstance(media, dict) and isinstance(media.get("schema"), dict):
            return media["schema"]
    return None


def _extract_request_body(body: Any) -> Optional[RequestBodyInfo]:
    if not isinstance(body, dict):
        return None

    content = body.get("content") or {}
    return RequestBodyInfo(
        required=bool(body.get("required", False)),
        description=body.get("description"),
        content_types=list(content.keys()),
        schema=_first_schema(content),
    )


def _extract_responses(responses: dict[str, Any]) -> list[ResponseInfo]:
    result: list[ResponseInfo] = []

    for status_code, response in responses.items():
        if not isinstance(response, dict):
            continue
        content = response.get("content") or {}
        result.append(
            ResponseInfo(
                status_code=str(status_code),
                description=response.get("description"),
                content_types=list(content.keys()),
                schema=_first_schema(content),
            )
        )

    return result


def _extract_security_schemes(components: dict[str, Any]) -> dict[str, SecurityScheme]:
    """Extract security scheme definitions from ``components/securitySchemes``.

    Supports all OpenAPI scheme types: ``apiKey``, ``http``, ``oauth2``, and
    ``openIdConnect``.
    """
    schemes: dict[str, SecurityScheme] = {}

    for name, scheme_data in (components.get("securitySchemes") or {}).items():
        if not isinstance(scheme_data, dict):
            continue
        schemes[name] = SecurityScheme(
            name=name,
            type=str(scheme_data.get("type", "")),
            description=scheme_data.get("description"),
            key_name=scheme_data.get("name"),
            location=scheme_data.get("in"),
            scheme=scheme_data.get("scheme"),
            bearer_format=scheme_data.get("bearerFormat"),
            flows=scheme_data.get("flows"),
            openid_connect_url=scheme_data.get("openIdConnectUrl"),
        )

    return schemes
