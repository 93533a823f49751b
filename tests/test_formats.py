"""
Test suite for goldendiff.formats — tokenizers, fence extraction, canonical JSON.

    §1  Tokenizers
    §2  Markdown extraction
    §3  JSON validity
    §4  Canonicalization
    §5  Python ↔ JValue conversions
"""

import sys
import os
import json
import pytest

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from goldendiff.core import JAtom, JArray, JObject, MAX_NESTING_DEPTH
from goldendiff.formats import (
    tokenize_words, tokenize_lines,
    extract_from_markdown, is_valid_json,
    canonicalize, normalize_tree, Canonical,
    from_python, to_python, from_json, to_json,
)


# ═══════════════════════════════════════════════════════════════════
#  §1  TOKENIZERS
# ═══════════════════════════════════════════════════════════════════

class TestTokenizers:

    @pytest.mark.parametrize("text,expected", [
        ("", []),
        ("   ", []),
        ("hello", ["hello"]),
        ("Hello world", ["Hello", "world"]),
        ("  hello   world\n", ["hello", "world"]),
        ("tab\tseparated\nlines", ["tab", "separated", "lines"]),
    ])
    def test_words(self, text, expected):
        assert tokenize_words(text) == expected

    @pytest.mark.parametrize("text,expected", [
        ("", []),
        ("one line", ["one line"]),
        ("a\nb", ["a", "b"]),
        ("a\n\nb", ["a", "", "b"]),
        ("a\n", ["a", ""]),
        ("  indented\n", ["  indented", ""]),
    ])
    def test_lines(self, text, expected):
        assert tokenize_lines(text) == expected

    def test_words_rejects_non_str(self):
        with pytest.raises(TypeError):
            tokenize_words(None)

    def test_lines_rejects_non_str(self):
        with pytest.raises(TypeError):
            tokenize_lines(b"bytes")


# ═══════════════════════════════════════════════════════════════════
#  §2  MARKDOWN EXTRACTION
# ═══════════════════════════════════════════════════════════════════

class TestExtractFromMarkdown:

    @pytest.mark.parametrize("text,expected", [
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('```JSON\n{"a": 1}\n```', '{"a": 1}'),
        ('```javascript\n[1, 2]\n```', '[1, 2]'),
        ('```js\n[1, 2]\n```', '[1, 2]'),
        ('```\n{"a": 1}\n```', '{"a": 1}'),
        ('  ```json\n{"a": 1}\n```  \n', '{"a": 1}'),
        ('`{"a": 1}`', '{"a": 1}'),
        ('{"a": 1}', '{"a": 1}'),
        ("", ""),
    ])
    def test_extract(self, text, expected):
        assert extract_from_markdown(text) == expected

    def test_prose_around_fence_is_kept(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```'
        assert extract_from_markdown(text).startswith("Here you go:")

    def test_single_backtick_not_stripped(self):
        assert extract_from_markdown("`") == "`"


# ═══════════════════════════════════════════════════════════════════
#  §3  JSON VALIDITY
# ═══════════════════════════════════════════════════════════════════

class TestIsValidJson:

    @pytest.mark.parametrize("text", [
        '{"a": 1}',
        '[1, 2, 3]',
        '"string"',
        '42',
        'null',
        'true',
        '  {"padded": true}  ',
        '```json\n{"fenced": true}\n```',
        '`[1]`',
    ])
    def test_valid(self, text):
        assert is_valid_json(text)

    @pytest.mark.parametrize("text", [
        "",
        "   ",
        "not json",
        "{a: 1}",
        '{"a": 1,}',
        "NaN",
        '{"a": NaN}',
        "[Infinity]",
        "-Infinity",
        "Hello world",
    ])
    def test_invalid(self, text):
        assert not is_valid_json(text)

    def test_rejects_non_str(self):
        with pytest.raises(TypeError):
            is_valid_json({"a": 1})

    @pytest.mark.parametrize("text", [
        "[" * 100000,
        "[" * 100000 + "]" * 100000,
        '{"a": ' * 5000 + "1" + "}" * 5000,
        "[" * (MAX_NESTING_DEPTH + 1) + "]" * (MAX_NESTING_DEPTH + 1),
    ])
    def test_too_deep_is_invalid(self, text):
        assert not is_valid_json(text)

    def test_nesting_at_limit_is_valid(self):
        assert is_valid_json("[" * MAX_NESTING_DEPTH + "]" * MAX_NESTING_DEPTH)

    @pytest.mark.parametrize("text", ["1e400", "-1e400", '{"a": 1e400}', "[2e999]"])
    def test_overflowing_number_is_invalid(self, text):
        assert not is_valid_json(text)

    def test_large_finite_number_is_valid(self):
        assert is_valid_json('{"a": 1e308}')


# ═══════════════════════════════════════════════════════════════════
#  §4  CANONICALIZATION
# ═══════════════════════════════════════════════════════════════════

class TestCanonicalize:

    def test_keys_sorted(self):
        c = canonicalize('{"b": 2, "a": 1}')
        assert c.ok
        assert c.error is None
        assert c.normalized_text == '{\n  "a": 1,\n  "b": 2\n}'

    def test_nested_keys_sorted(self):
        c = canonicalize('{"z": {"y": 1, "x": 2}, "a": []}')
        assert list(c.parsed) == ["a", "z"]
        assert list(c.parsed["z"]) == ["x", "y"]

    def test_key_permutation_invariant(self):
        a = canonicalize('{"name": "John", "age": 30, "city": "NYC"}')
        b = canonicalize('{"city": "NYC", "name": "John", "age": 30}')
        assert a.normalized_text == b.normalized_text
        assert a.tree == b.tree

    def test_arrays_sorted_by_id(self):
        a = canonicalize('[{"id": 2, "v": "b"}, {"id": 1, "v": "a"}]')
        assert [item["id"] for item in a.parsed] == [1, 2]

    def test_id_sort_is_lexicographic(self):
        c = canonicalize('[{"id": 2}, {"id": 10}]')
        assert [item["id"] for item in c.parsed] == [10, 2]

    def test_arrays_sorted_by_name(self):
        c = canonicalize('{"users": [{"name": "Zed"}, {"name": "Amy"}]}')
        assert [u["name"] for u in c.parsed["users"]] == ["Amy", "Zed"]

    def test_arrays_sorted_by_key(self):
        c = canonicalize('[{"key": "b"}, {"key": "a"}]')
        assert [item["key"] for item in c.parsed] == ["a", "b"]

    def test_falsy_id_falls_through_to_name(self):
        c = canonicalize('[{"id": 0, "name": "b"}, {"id": 0, "name": "a"}]')
        assert [item["name"] for item in c.parsed] == ["a", "b"]

    def test_id_permutation_invariant(self):
        a = canonicalize('{"items": [{"id": 1, "x": 1}, {"id": 2, "x": 2}, {"id": 3, "x": 3}]}')
        b = canonicalize('{"items": [{"id": 3, "x": 3}, {"id": 1, "x": 1}, {"id": 2, "x": 2}]}')
        assert a.normalized_text == b.normalized_text

    @pytest.mark.parametrize("text", [
        "[3, 1, 2]",
        '["step two", "step one"]',
        '[{"value": 2}, {"value": 1}]',
        '[[2], [1]]',
    ])
    def test_order_preserved_without_sort_field(self, text):
        assert canonicalize(text).parsed == json.loads(text)

    def test_idempotent(self):
        c = canonicalize('{"b": [{"id": "y"}, {"id": "x"}], "a": {"d": 1, "c": 2}}')
        again = canonicalize(c.normalized_text)
        assert again.normalized_text == c.normalized_text

    def test_fenced_input(self):
        fenced = canonicalize('```json\n{"b": 2, "a": 1}\n```')
        bare = canonicalize('{"a": 1, "b": 2}')
        assert fenced.normalized_text == bare.normalized_text

    def test_unicode_kept(self):
        c = canonicalize('{"greeting": "h\\u00e9llo"}')
        assert "héllo" in c.normalized_text

    def test_scalars(self):
        assert canonicalize("42").normalized_text == "42"
        assert canonicalize("null").parsed is None
        assert canonicalize("null").ok

    def test_parse_failure_keeps_original_text(self):
        c = canonicalize("not json at all")
        assert isinstance(c, Canonical)
        assert not c.ok
        assert c.tree is None
        assert c.parsed is None
        assert c.normalized_text == "not json at all"
        assert c.error

    def test_nan_literal_is_failure(self):
        c = canonicalize('{"a": NaN}')
        assert not c.ok
        assert "NaN" in c.error

    def test_deep_nesting_is_failure(self):
        text = "[" * 100000
        c = canonicalize(text)
        assert not c.ok
        assert c.error == "nesting too deep"
        assert c.normalized_text == text

    def test_deep_but_balanced_is_failure(self):
        depth = MAX_NESTING_DEPTH + 1
        c = canonicalize("[" * depth + "]" * depth)
        assert not c.ok
        assert c.error == "nesting too deep"

    def test_overflowing_number_is_failure(self):
        c = canonicalize('{"a": 1e400}')
        assert not c.ok
        assert "out of range" in c.error
        assert c.normalized_text == '{"a": 1e400}'

    def test_rejects_non_str(self):
        with pytest.raises(TypeError):
            canonicalize(None)


class TestNormalizeTree:

    def test_atom_unchanged(self):
        assert normalize_tree(JAtom("x")) == JAtom("x")

    def test_object_order(self):
        tree = normalize_tree(JObject({"b": JAtom(1), "a": JAtom(2)}))
        assert list(tree.entries) == ["a", "b"]

    def test_stable_for_equal_sort_fields(self):
        tree = normalize_tree(from_python([
            {"id": "same", "n": 1},
            {"id": "same", "n": 2},
        ]))
        assert [to_python(item)["n"] for item in tree.items] == [1, 2]

    def test_unknown_type(self):
        with pytest.raises(TypeError):
            normalize_tree({"a": 1})

    def test_too_deep_tree(self):
        tree = JAtom(0)
        for _ in range(20000):
            tree = JArray((tree,))
        with pytest.raises(ValueError, match="nesting too deep"):
            normalize_tree(tree)


# ═══════════════════════════════════════════════════════════════════
#  §5  PYTHON ↔ JVALUE CONVERSIONS
# ═══════════════════════════════════════════════════════════════════

class TestConversions:

    def test_from_python_shapes(self):
        val = from_python({"a": [1, "x", None, True]})
        assert isinstance(val, JObject)
        assert isinstance(val.entries["a"], JArray)
        assert val.entries["a"].items[0] == JAtom(1)

    def test_to_python_inverse(self):
        obj = {"a": [1, 2.5, {"b": None}], "c": "text", "d": False}
        assert to_python(from_python(obj)) == obj

    def test_tuple_is_array(self):
        assert from_python((1, 2)) == JArray((JAtom(1), JAtom(2)))

    def test_non_json_value(self):
        with pytest.raises(TypeError):
            from_python({1, 2})

    def test_json_text(self):
        val = from_json('{"k": [1, 2]}')
        assert to_json(val) == '{"k": [1, 2]}'

    def test_to_python_unknown(self):
        with pytest.raises(TypeError):
            to_python("raw")

    def test_from_python_too_deep(self):
        obj = []
        for _ in range(20000):
            obj = [obj]
        with pytest.raises(ValueError, match="nesting too deep"):
            from_python(obj)

    def test_from_json_rejects_non_finite(self):
        with pytest.raises(ValueError):
            from_json("[NaN]")
        with pytest.raises(ValueError):
            from_json("[1e400]")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
