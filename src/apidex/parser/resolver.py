"""Resolve ``$ref`` JSON Reference pointers in OpenAPI documents.

OpenAPI documents commonly use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Pet"}``) to avoid repetition.  This module
performs a recursive deep-copy traversal of the document, replacing every
``$ref`` with the object it points to.

Only **internal** references (those starting with ``#/``) are supported.
Unresolvable and external references do not stop the traversal: each one is
appended to the caller's diagnostics list and the ``$ref`` dict is left in
place, so a single validation failure can report every broken pointer.

Circular references are detected via a ``seen`` set and left unresolved to
prevent infinite recursion.  A schema that references itself (common in
tree-like structures) keeps its ``$ref`` dict at the cycle point.
"""

from __future__ import annotations

import copy
from typing import Any


class _UnresolvableRef(Exception):
    pass


def resolve_refs(spec: dict[str, Any], diagnostics: list[str]) -> dict[str, Any]:
    """Resolve all internal ``$ref`` pointers in *spec*.

    Args:
        spec: The raw OpenAPI dictionary, as returned by
            :func:`~apidex.parser.loader.load_document`. Not modified.
        diagnostics: List that receives one message per broken reference.

    Returns:
        A **new** dictionary with every resolvable ``$ref`` replaced by its
        target. Broken references remain as ``$ref`` dicts.
    """
    root = copy.deepcopy(spec)
    reported: set[str] = set()
    return _deep_resolve(root, root, None, diagnostics, reported)


def _resolve_ref(ref: Any, root: dict[str, Any]) -> Any:
    """Resolve a single ``$ref`` string against the root document.

    Handles RFC 6901 JSON Pointer escaping (``~0`` for ``~``, ``~1`` for
    ``/``).

    Raises:
        _UnresolvableRef: If the reference is not a string, is external, or
            any pointer segment does not exist.
    """
    if not isinstance(ref, str):
        raise _UnresolvableRef(f"$ref must be a string (got {type(ref).__name__})")
    if not ref.startswith("#/"):
        raise _UnresolvableRef(
            f"External $ref not supported: {ref}. "
            "Only internal references (#/...) are handled."
        )

    current: Any = root
    for segment in ref[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")

        if isinstance(current, dict):
            if segment not in current:
                raise _UnresolvableRef(
                    f"Cannot resolve $ref '{ref}': key '{segment}' not found at path"
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise _UnresolvableRef(
                    f"Cannot resolve $ref '{ref}': invalid array index '{segment}'"
                ) from exc
        else:
            raise _UnresolvableRef(
                f"Cannot resolve $ref '{ref}': cannot navigate into {type(current).__name__}"
            )

    return current


def _deep_resolve(
    obj: Any,
    root: dict[str, Any],
    seen: frozenset[str] | None,
    diagnostics: list[str],
    reported: set[str],
) -> Any:
    """Recursively resolve all ``$ref`` pointers within *obj*.

    ``seen`` holds the references on the current resolution stack; a fresh
    set is built per branch so sibling references do not interfere.
    ``reported`` keeps each broken reference to a single diagnostic even
    when it is used in many places.
    """
    if seen is None:
        seen = frozenset()

    if isinstance(obj, dict):
        if "$ref" in obj:
            ref = obj["$ref"]
            if isinstance(ref, str) and ref in seen:
                return obj
            try:
                resolved = _resolve_ref(ref, root)
            except _UnresolvableRef as exc:
                message = str(exc)
                if message not in reported:
                    reported.add(message)
                    diagnostics.append(message)
                return obj
            return _deep_resolve(resolved, root, seen | {ref}, diagnostics, reported)

        return {
            key: _deep_resolve(value, root, seen, diagnostics, reported)
            for key, value in obj.items()
        }

    if isinstance(obj, list):
        return [_deep_resolve(item, root, seen, diagnostics, reported) for item in obj]

    return obj
