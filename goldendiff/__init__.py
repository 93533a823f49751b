"""
goldendiff
==========

Scores generator outputs against a golden copy and ranks the generators.

    diff_words("Hello world", "Hello world").similarity          → 1.0
    diff_json('{"a":1,"b":2}', '{"a":1,"c":3}').similarity        → 0.333…
    diff_json('{"a":1}', '```json\\n{"a":1}\\n```').similarity     → 1.0

Three engines share one result shape (diff_score, similarity,
diff_html, change tally):

  • Word diff — token alignment with a discount for near-identical words
  • Line diff — the same alignment over lines, patch-style rendering
  • JSON diff — canonicalized trees (sorted keys, id/name/key-sorted
    arrays) scored by the fraction of leaf key-value pairs that match

The engines are pure functions: no I/O, no shared state, safe to call
from many threads.  Diagnostics go to the `goldendiff` logger, which is
silent unless the application attaches a handler.
"""

import logging

from goldendiff.core import (
    # Types
    JValue,
    JAtom,
    JArray,
    JObject,
    DiffOp,
    DiffPart,
    ArrayOp,
    ArrayEntry,
    Granular,
    # Algorithms
    edit_distance,
    similarity,
    align,
    deep_equal,
    granular,
    object_similarity,
    reconcile_arrays,
)
from goldendiff.formats import (
    Canonical, canonicalize, extract_from_markdown, is_valid_json,
    normalize_tree, tokenize_lines, tokenize_words,
    from_json, to_json, from_python, to_python,
)
from goldendiff.compare import (
    WordDiffResult, LineDiffResult, JsonDiffResult, JsonChanges, TextChanges,
    Comparison,
    diff_words, diff_lines, diff_json, semantic_overlap, diff_summary, compare,
)
from goldendiff.ranking import rank_outputs, Ranking, RankedOutput

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "JValue", "JAtom", "JArray", "JObject",
    "DiffOp", "DiffPart", "ArrayOp", "ArrayEntry", "Granular",
    "edit_distance", "similarity", "align",
    "deep_equal", "granular", "object_similarity", "reconcile_arrays",
    "Canonical", "canonicalize", "extract_from_markdown", "is_valid_json",
    "normalize_tree", "tokenize_lines", "tokenize_words",
    "from_json", "to_json", "from_python", "to_python",
    "WordDiffResult", "LineDiffResult", "JsonDiffResult", "JsonChanges", "TextChanges",
    "Comparison",
    "diff_words", "diff_lines", "diff_json", "semantic_overlap", "diff_summary", "compare",
    "rank_outputs", "Ranking", "RankedOutput",
]
