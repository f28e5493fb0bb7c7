"""Deterministic cleanup of provider-generated specification text.

LLM drafts routinely arrive wrapped in markdown code fences, with path keys
and media types written as escaped slashes (``\\/``, ``u002f``,
``\\u002f``), or with a sentence of prose before and after the JSON object.
:func:`normalize` repairs all three before any parser sees the text.

YAML drafts are left intact: when the text opens with a ``key:`` line and
loads as a YAML mapping, braces inside it are flow-style YAML, not an
object to cut out.

The function never raises and is idempotent: ``normalize(normalize(t)) ==
normalize(t)`` for every string ``t``. Garbage in yields best-effort text
out; rejecting it is the validator's job.

:func:`strip_code_fences` is the lighter pass providers apply to their own
output before returning it.
"""

from __future__ import annotations

import re

import yaml

_FENCE = "```"
_LEADING_FENCE_RE = re.compile(r"^```[A-Za-z0-9_+\-]*")
_TRAILING_FENCE_RE = re.compile(r"```\s*$")

# A run of backslashes before the escaped form collapses with it, so that
# e.g. "\\u002f" and "\\/" do not leave a new "\/" behind for a second pass.
_UNICODE_SLASH_RE = re.compile(r"\\*u002f")
_ESCAPED_SLASH_RE = re.compile(r"\\+/")
_YAML_KEY_LINE_RE = re.compile(r"""^["']?[A-Za-z_$][\w.$-]*["']?[ \t]*:(?:[ \t]|$)""")


def normalize(text: str | None) -> str:
    """Return the cleaned form of *text*.

    Steps, in order:

    1. Trim surrounding whitespace.
    2. While the text starts with a triple-backtick fence, drop that fence
       (and its optional language tag) plus any trailing fence.
    3. Replace ``\\u002f``, ``u002f`` and ``\\/`` with ``/``.
    4. Keep only the span from the first ``{`` to the last ``}`` when both
       exist in that order, unless the text is a YAML mapping. Text without
       braces passes through.

    Args:
        text: Raw text, possibly ``None``.

    Returns:
        The normalized text (``""`` for ``None``).
    """
    cleaned = (text or "").strip()
    cleaned = _strip_leading_fences(cleaned)
    cleaned = replace_escaped_slashes(cleaned).strip()
    return _extract_object(cleaned)


def replace_escaped_slashes(text: str) -> str:
    """Replace every escaped-slash spelling in *text* with a plain ``/``."""
    text = _UNICODE_SLASH_RE.sub("/", text)
    return _ESCAPED_SLASH_RE.sub("/", text)


def strip_code_fences(text: str | None) -> str | None:
    """Remove a markdown fence that wraps a provider response.

    Only acts when *text* starts with a fence. When the fenced content holds
    a ``{ ... }`` object the object span is returned; otherwise the fence
    lines are dropped and the inner text is returned trimmed.
    """
    if text is None:
        return None
    stripped = text.strip()
    if not stripped.startswith(_FENCE):
        return text
    inner = _strip_leading_fences(stripped)
    if _is_yaml_mapping(inner):
        return inner
    start, end = stripped.find("{"), stripped.rfind("}")
    if start >= 0 and end > start:
        return stripped[start : end + 1]
    return inner


def _strip_leading_fences(text: str) -> str:
    while text.startswith(_FENCE):
        text = _LEADING_FENCE_RE.sub("", text, count=1)
        text = _TRAILING_FENCE_RE.sub("", text).strip()
    return text


def _extract_object(text: str) -> str:
    if _is_yaml_mapping(text):
        return text
    start, end = text.find("{"), text.rfind("}")
    if start >= 0 and end > start:
        return text[start : end + 1]
    return text


def _is_yaml_mapping(text: str) -> bool:
    if not _YAML_KEY_LINE_RE.match(text.split("\n", 1)[0]):
        return False
    try:
        return isinstance(yaml.safe_load(text), dict)
    except yaml.YAMLError:
        return False
