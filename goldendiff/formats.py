"""
goldendiff.formats — Tokenizing and normalizing generator output.

Supported conversions:
    • Raw text → word tokens / line tokens
    • Markdown-fenced text → bare JSON text
    • JSON text → canonical JValue tree + pretty-printed canonical text
    • Python objects (dict, list, str, int, float, bool, None) ↔ JValue
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Optional

from .core import MAX_NESTING_DEPTH, SORT_KEY_FIELDS, JArray, JAtom, JObject, JValue

logger = logging.getLogger(__name__)

NESTING_TOO_DEEP = "nesting too deep"


def require_str(name: str, value: Any) -> None:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be str, not {type(value).__name__}")


# ═══════════════════════════════════════════════════════════════════
#  TOKENIZERS
# ═══════════════════════════════════════════════════════════════════

def tokenize_words(text: str) -> list[str]:
    """Split on whitespace runs; whitespace itself is never a token."""
    require_str("text", text)
    return text.split()


def tokenize_lines(text: str) -> list[str]:
    """
    Split on newlines without touching the lines themselves.

    Empty text has no lines.
    """
    require_str("text", text)
    if not text:
        return []
    return text.split("\n")


# ═══════════════════════════════════════════════════════════════════
#  MARKDOWN EXTRACTION
# ═══════════════════════════════════════════════════════════════════

_OPENING_FENCE = re.compile(r"^```(?:json|javascript|js)?\s*\n?", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\n?```\s*$")


def extract_from_markdown(text: str) -> str:
    """
    Strip one layer of code-fence markers from model output.

        '```json\\n{"a": 1}\\n```'   → '{"a": 1}'
        '`{"a": 1}`'               → '{"a": 1}'
        '{"a": 1}'                 → '{"a": 1}'   (unchanged)
    """
    require_str("text", text)
    extracted = text.strip()
    extracted = _OPENING_FENCE.sub("", extracted, count=1)
    extracted = _CLOSING_FENCE.sub("", extracted, count=1)
    extracted = extracted.strip()

    if len(extracted) >= 2 and extracted.startswith("`") and extracted.endswith("`"):
        extracted = extracted[1:-1].strip()

    return extracted


def _reject_constant(name: str) -> Any:
    # NaN / Infinity are not JSON
    raise ValueError(f"Invalid JSON literal: {name}")


def _finite_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError(f"Number out of range: {literal}")
    return value


def _check_depth(obj: Any) -> None:
    """Raise ValueError if containers nest deeper than MAX_NESTING_DEPTH."""
    stack = [(obj, 1)]
    while stack:
        node, depth = stack.pop()
        if isinstance(node, dict):
            children = node.values()
        elif isinstance(node, list):
            children = node
        else:
            continue
        if depth > MAX_NESTING_DEPTH:
            raise ValueError(NESTING_TOO_DEEP)
        stack.extend((child, depth + 1) for child in children)


def _loads(text: str) -> Any:
    try:
        obj = json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)
    except RecursionError:
        raise ValueError(NESTING_TOO_DEEP) from None
    _check_depth(obj)
    return obj


def _parse(text: str) -> Any:
    """Parse raw text first, then the fence-stripped form.  Raises ValueError on failure."""
    try:
        return _loads(text.strip())
    except ValueError:
        return _loads(extract_from_markdown(text))


def is_valid_json(text: str) -> bool:
    """True if `text` parses as JSON, directly or after fence extraction."""
    require_str("text", text)
    try:
        _parse(text)
    except ValueError:
        return False
    return True


# ═══════════════════════════════════════════════════════════════════
#  PYTHON OBJECTS ↔ JSON VALUES
# ═══════════════════════════════════════════════════════════════════

def from_python(obj: Any) -> JValue:
    """
    Convert a parsed JSON object to a JValue.

    Mapping:
        None / bool / int / float / str → JAtom
        list / tuple                    → JArray
        dict                            → JObject

    Nested structures are converted recursively.
    Raises ValueError when the nesting is too deep to convert.
    """
    try:
        return _from_python(obj)
    except RecursionError:
        raise ValueError(NESTING_TOO_DEEP) from None


def _from_python(obj: Any) -> JValue:
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return JAtom(obj)
    if isinstance(obj, (list, tuple)):
        return JArray(tuple(_from_python(item) for item in obj))
    if isinstance(obj, dict):
        return JObject({str(k): _from_python(v) for k, v in obj.items()})
    raise TypeError(f"Not a JSON value: {type(obj).__name__}")


def to_python(val: JValue) -> Any:
    """
    Convert a JValue back to a plain Python object.

    Inverse of from_python for JSON-compatible objects.
    """
    if isinstance(val, JAtom):
        return val.val
    if isinstance(val, JArray):
        return [to_python(item) for item in val.items]
    if isinstance(val, JObject):
        return {k: to_python(v) for k, v in val.entries.items()}
    raise TypeError(f"Unknown JValue type: {type(val)}")


def from_json(text: str) -> JValue:
    """Parse a JSON string into a JValue."""
    return from_python(_loads(text))


def to_json(val: JValue, **kwargs) -> str:
    """Convert a JValue to a JSON string."""
    return json.dumps(to_python(val), **kwargs)


# ═══════════════════════════════════════════════════════════════════
#  CANONICALIZATION
# ═══════════════════════════════════════════════════════════════════

def _sort_token(value: JValue) -> str:
    """String form of an array element's sort field ("" when absent or falsy)."""
    if not isinstance(value, JObject):
        return ""
    for field in SORT_KEY_FIELDS:
        field_value = value.entries.get(field)
        if isinstance(field_value, JAtom) and field_value.val:
            v = field_value.val
            return v if isinstance(v, str) else json.dumps(v)
        if field_value is not None and not isinstance(field_value, JAtom):
            return to_json(field_value, sort_keys=True)
    return ""


def _is_sortable(items: tuple[JValue, ...]) -> bool:
    if not items:
        return False
    first = items[0]
    return isinstance(first, JObject) and any(f in first.entries for f in SORT_KEY_FIELDS)


def normalize_tree(val: JValue) -> JValue:
    """
    Canonical form of a JSON tree.

        • object keys sorted lexicographically at every level
        • arrays whose first element is an object with an `id`, `name`
          or `key` field are sorted by that field's string form
        • every other array keeps its order (ordered steps stay ordered)

    Deterministic and idempotent.
    Raises ValueError when the tree is too deep to walk.
    """
    try:
        return _normalize(val)
    except RecursionError:
        raise ValueError(NESTING_TOO_DEEP) from None


def _normalize(val: JValue) -> JValue:
    if isinstance(val, JAtom):
        return val
    if isinstance(val, JArray):
        items = tuple(_normalize(item) for item in val.items)
        if _is_sortable(items):
            items = tuple(sorted(items, key=_sort_token))
        return JArray(items)
    if isinstance(val, JObject):
        return JObject({k: _normalize(val.entries[k]) for k in sorted(val.entries)})
    raise TypeError(f"Unknown JValue type: {type(val)}")


@dataclass(frozen=True)
class Canonical:
    """Outcome of canonicalize: canonical text and tree, or the parse error."""
    normalized_text: str
    tree: Optional[JValue]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.tree is not None

    @property
    def parsed(self) -> Any:
        """The canonical tree as plain Python objects (None on failure)."""
        return to_python(self.tree) if self.tree is not None else None


def render_canonical(tree: JValue) -> str:
    """Pretty-printed JSON text of an already canonical tree."""
    return json.dumps(to_python(tree), indent=2, ensure_ascii=False)


def canonicalize(text: str) -> Canonical:
    """
    Parse and canonicalize JSON text.

    Never raises for malformed input: a failed parse returns the
    original text, no tree, and the parser's message.
    """
    require_str("text", text)
    try:
        tree = normalize_tree(from_python(_parse(text)))
    except ValueError as exc:
        logger.debug("JSON parse failed: %s", exc)
        return Canonical(normalized_text=text, tree=None, error=str(exc))

    return Canonical(normalized_text=render_canonical(tree), tree=tree)
