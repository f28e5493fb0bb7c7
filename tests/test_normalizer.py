"""Tests for apidex.normalizer."""

from __future__ import annotations

import json

import pytest

from apidex.normalizer import normalize, replace_escaped_slashes, strip_code_fences
from apidex.parser.validator import parse_or_fail


# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------


class TestNormalize:
    def test_none_becomes_empty_string(self) -> None:
        assert normalize(None) == ""

    def test_whitespace_only_becomes_empty_string(self) -> None:
        assert normalize("  \n\t ") == ""

    def test_strips_json_fence(self) -> None:
        text = '```json\n{"openapi":"3.0.3","paths":{}}\n```'
        assert normalize(text) == '{"openapi":"3.0.3","paths":{}}'

    def test_strips_bare_fence(self) -> None:
        assert normalize('```\n{"a":1}\n```') == '{"a":1}'

    def test_strips_nested_fences(self) -> None:
        text = '```\n```json\n{"a":1}\n```\n```'
        assert normalize(text) == '{"a":1}'

    def test_unterminated_fence(self) -> None:
        assert normalize('```json\n{"a":1}') == '{"a":1}'

    def test_replaces_backslash_slash(self) -> None:
        assert normalize('{"paths":{"\\/pets":{}}}') == '{"paths":{"/pets":{}}}'

    def test_replaces_unicode_escapes(self) -> None:
        assert normalize('{"p":"\\u002fpets"}') == '{"p":"/pets"}'

    def test_replaces_bare_u002f(self) -> None:
        assert normalize('{"p":"u002fpetsu002f{id}"}') == '{"p":"/pets/{id}"}'

    def test_extracts_object_from_prose(self) -> None:
        text = 'Sure! Here it is:\n{"openapi":"3.0.3"}\nHope that helps.'
        assert normalize(text) == '{"openapi":"3.0.3"}'

    def test_yaml_passes_through(self) -> None:
        text = "openapi: 3.0.3\npaths:\n  /a:\n    get:\n      summary: s\n"
        assert normalize(text) == text.strip()

    def test_flow_style_yaml_is_kept_whole(self) -> None:
        text = "openapi: 3.0.3\ninfo: {title: t, version: '1'}\npaths: {}"
        assert normalize(text + "\n") == text

    def test_flow_style_yaml_still_parses(self) -> None:
        text = "```yaml\nopenapi: 3.0.3\ninfo: {title: t, version: '1'}\npaths: {}\n```"
        parsed = parse_or_fail(normalize(text))
        assert parsed.info.title == "t"
        assert parsed.operation_count == 0

    def test_prose_with_colon_before_object_is_extracted(self) -> None:
        assert normalize('Note: output follows\n{"openapi":"3.0.3"}') == '{"openapi":"3.0.3"}'

    def test_text_without_braces_is_trimmed_only(self) -> None:
        assert normalize("  not a spec  ") == "not a spec"

    def test_closing_brace_before_opening_is_kept(self) -> None:
        assert normalize("} then {") == "} then {"

    def test_draft_fixture_becomes_valid_json(self, llm_draft_text: str) -> None:
        result = json.loads(normalize(llm_draft_text))
        assert list(result["paths"]) == ["/invoices", "/invoices/{id}"]

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "```",
            "``````",
            '```json\n{"a":"\\\\u002f"}\n```',
            '{"a":"\\\\\\/b"}',
            "x \\u002f y",
            'prefix { "k": "u002f" } suffix } tail',
            "```yaml\nopenapi: 3.1.0\n```",
            "openapi: 3.0.3\ninfo: {title: t}\npaths: {}",
        ],
    )
    def test_idempotent(self, text: str) -> None:
        once = normalize(text)
        assert normalize(once) == once

    def test_idempotent_on_fixture(self, llm_draft_text: str) -> None:
        once = normalize(llm_draft_text)
        assert normalize(once) == once


# ---------------------------------------------------------------------------
# replace_escaped_slashes / strip_code_fences
# ---------------------------------------------------------------------------


class TestReplaceEscapedSlashes:
    def test_collapses_backslash_runs(self) -> None:
        assert replace_escaped_slashes("a\\\\/b") == "a/b"
        assert replace_escaped_slashes("a\\\\u002fb") == "a/b"

    def test_leaves_other_escapes(self) -> None:
        assert replace_escaped_slashes('"\\n"') == '"\\n"'


class TestStripCodeFences:
    def test_none(self) -> None:
        assert strip_code_fences(None) is None

    def test_unfenced_text_is_unchanged(self) -> None:
        assert strip_code_fences('  {"a":1}  ') == '  {"a":1}  '

    def test_fenced_object(self) -> None:
        assert strip_code_fences('```json\nnote\n{"a":1}\n```') == '{"a":1}'

    def test_fenced_yaml(self) -> None:
        assert strip_code_fences("```yaml\nopenapi: 3.0.3\n```") == "openapi: 3.0.3"

    def test_fenced_flow_style_yaml(self) -> None:
        text = "```yaml\nopenapi: 3.0.3\npaths: {}\n```"
        assert strip_code_fences(text) == "openapi: 3.0.3\npaths: {}"
