"""
goldendiff.render — HTML for diff results.

All text is escaped before it is wrapped, so the output is trusted
markup built from a small fixed vocabulary:

    <span class="diff-added">      inserted word
    <span class="diff-removed">    deleted word
    <span class="diff-changed">    replaced word: <del>old</del> <ins>new</ins>
    <div class="diff-line diff-equal|diff-added|diff-removed|diff-changed">
                                   one row of a line or JSON diff;
                                   array rows carry data-index
"""

import html
import json
from typing import Optional

from .core import (
    ArrayOp, DiffOp, DiffPart, JArray, JObject, JValue,
    deep_equal, reconcile_arrays,
)
from .formats import to_python

INDENT = "  "


def escape(text: str) -> str:
    return html.escape(text, quote=True)


def _span(kind: str, inner: str, title: Optional[str] = None) -> str:
    title_attr = f' title="{escape(title)}"' if title is not None else ""
    return f'<span class="diff-{kind}"{title_attr}>{inner}</span>'


def _changed(old: str, new: str) -> str:
    return f"<del>{escape(old)}</del> <ins>{escape(new)}</ins>"


# ═══════════════════════════════════════════════════════════════════
#  WORD / LINE DIFFS
# ═══════════════════════════════════════════════════════════════════

def render_words(parts: list[DiffPart]) -> str:
    """Inline word diff, tokens separated by single spaces."""
    out: list[str] = []
    for part in parts:
        if part.op == DiffOp.EQUAL:
            out.append(escape(part.text))
        elif part.op == DiffOp.DELETE:
            out.append(_span("removed", escape(part.text), "Removed"))
        elif part.op == DiffOp.INSERT:
            out.append(_span("added", escape(part.text), "Added"))
        else:
            out.append(_span("changed",
                             _changed(part.reference_text or "", part.candidate_text or ""),
                             f"Changed from '{part.reference_text or ''}'"))
    return " ".join(out)


def _line_row(kind: str, marker: str, text: str) -> str:
    return f'<div class="diff-line diff-{kind}">{marker} {escape(text)}</div>'


def render_lines(parts: list[DiffPart]) -> str:
    """Patch-style line diff.  A replaced line becomes a removed row and an added row."""
    rows: list[str] = []
    for part in parts:
        if part.op == DiffOp.EQUAL:
            rows.append(_line_row("equal", " ", part.text))
        elif part.op == DiffOp.DELETE:
            rows.append(_line_row("removed", "-", part.text))
        elif part.op == DiffOp.INSERT:
            rows.append(_line_row("added", "+", part.text))
        else:
            rows.append(_line_row("removed", "-", part.reference_text or ""))
            rows.append(_line_row("added", "+", part.candidate_text or ""))
    return "\n".join(rows)


# ═══════════════════════════════════════════════════════════════════
#  JSON DIFFS
# ═══════════════════════════════════════════════════════════════════

def _compact(val: JValue) -> str:
    return json.dumps(to_python(val), ensure_ascii=False)


def _json_row(kind: str, depth: int, content: str, index: Optional[int] = None) -> str:
    index_attr = f' data-index="{index}"' if index is not None else ""
    return f'<div class="diff-line diff-{kind}"{index_attr}>{INDENT * depth}{content}</div>'


def _label(key: Optional[str]) -> str:
    return "" if key is None else escape(json.dumps(key, ensure_ascii=False)) + ": "


def _json_rows(ref: JValue, cand: JValue, depth: int, key: Optional[str]) -> list[str]:
    label = _label(key)

    if deep_equal(ref, cand):
        return [_json_row("equal", depth, label + escape(_compact(cand)))]

    if isinstance(ref, JObject) and isinstance(cand, JObject):
        rows = [_json_row("equal", depth, label + "{")]
        for k in sorted(set(ref.entries) | set(cand.entries)):
            if k not in cand.entries:
                rows.append(_json_row("removed", depth + 1,
                                      _label(k) + escape(_compact(ref.entries[k]))))
            elif k not in ref.entries:
                rows.append(_json_row("added", depth + 1,
                                      _label(k) + escape(_compact(cand.entries[k]))))
            else:
                rows.extend(_json_rows(ref.entries[k], cand.entries[k], depth + 1, k))
        rows.append(_json_row("equal", depth, "}"))
        return rows

    if isinstance(ref, JArray) and isinstance(cand, JArray):
        rows = [_json_row("equal", depth, label + "[")]
        rows.extend(render_array_entries(ref, cand, depth + 1))
        rows.append(_json_row("equal", depth, "]"))
        return rows

    return [_json_row("changed", depth, label + _changed(_compact(ref), _compact(cand)))]


def render_array_entries(ref: JArray, cand: JArray, depth: int = 0) -> list[str]:
    """One row per reconciled element, tagged with the element's original index."""
    rows: list[str] = []
    for entry in reconcile_arrays(ref.items, cand.items):
        if entry.op == ArrayOp.ADDED:
            rows.append(_json_row("added", depth, escape(_compact(entry.value)),
                                  index=entry.new_index))
        elif entry.op == ArrayOp.REMOVED:
            rows.append(_json_row("removed", depth, escape(_compact(entry.value)),
                                  index=entry.old_index))
        else:
            old = ref.items[entry.old_index]
            if deep_equal(old, entry.value):
                rows.append(_json_row("equal", depth, escape(_compact(entry.value)),
                                      index=entry.new_index))
            else:
                rows.append(_json_row("changed", depth,
                                      _changed(_compact(old), _compact(entry.value)),
                                      index=entry.new_index))
    return rows


def render_json(reference: JValue, candidate: JValue) -> str:
    """Row-per-key HTML for two canonical JSON trees."""
    return "\n".join(_json_rows(reference, candidate, 0, None))
