"""
goldendiff.compare — Scoring a candidate output against a golden copy.

Three engines, one result shape (score, similarity, html, change tally):

    diff_words(ref, cand)   word-level alignment, fuzzy threshold 0.8
    diff_lines(ref, cand)   line-level alignment, fuzzy threshold 0.9
    diff_json(ref, cand)    canonical JSON trees, granular pair matching

diff_json never raises on malformed JSON.  If either side does not
parse, its numeric fields are NaN and callers rank by diff_words
instead; compare() does that fallback for them.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Union

from .core import (
    LINE_FUZZY_THRESHOLD, WORD_FUZZY_THRESHOLD,
    ArrayOp, DiffOp, DiffPart, JArray, JAtom, JObject, JValue,
    align, deep_equal, kind, object_similarity, reconcile_arrays,
)
from .formats import (
    canonicalize, is_valid_json, require_str, tokenize_lines, tokenize_words,
)
from .render import render_json, render_lines, render_words

logger = logging.getLogger(__name__)

NAN = float("nan")


# ═══════════════════════════════════════════════════════════════════
#  RESULT TYPES
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TextChanges:
    added: int = 0
    removed: int = 0
    modified: int = 0

    @property
    def total(self) -> int:
        return self.added + self.removed + self.modified


@dataclass(frozen=True)
class TokenCount:
    reference: int
    candidate: int


@dataclass(frozen=True)
class WordDiffResult:
    """Word-level comparison.  similarity == 1 - diff_score."""
    diff_score: float
    similarity: float
    diff_html: str
    levenshtein_distance: float
    word_count: TokenCount
    changes: TextChanges

    def __repr__(self) -> str:
        return f"WordDiffResult(similarity={self.similarity:.3f}, changes={self.changes})"


@dataclass(frozen=True)
class LineDiffResult:
    """Line-level comparison.  similarity == 1 - diff_score."""
    diff_score: float
    similarity: float
    diff_html: str
    levenshtein_distance: float
    line_count: TokenCount
    changes: TextChanges

    def __repr__(self) -> str:
        return f"LineDiffResult(similarity={self.similarity:.3f}, changes={self.changes})"


@dataclass
class JsonChanges:
    """Change tally over two canonical JSON trees."""
    structural_changes: int = 0
    value_changes: int = 0
    additions: int = 0
    removals: int = 0


@dataclass(frozen=True)
class Validity:
    reference: bool
    candidate: bool


@dataclass(frozen=True)
class ParseErrors:
    reference: Optional[str] = None
    candidate: Optional[str] = None


@dataclass(frozen=True)
class JsonDiffResult:
    """
    Structural JSON comparison.

    When either side is not valid JSON, `diff_score` and `similarity`
    are NaN and `comparable` is False.
    """
    diff_score: float
    similarity: float
    diff_html: str
    normalized_reference: str
    normalized_candidate: str
    is_valid_json: Validity
    parse_errors: ParseErrors
    changes: JsonChanges = field(default_factory=JsonChanges)

    @property
    def comparable(self) -> bool:
        return self.is_valid_json.reference and self.is_valid_json.candidate

    def __repr__(self) -> str:
        if not self.comparable:
            return f"JsonDiffResult(not comparable: {self.is_valid_json})"
        return f"JsonDiffResult(similarity={self.similarity:.3f}, changes={self.changes})"


DiffResult = Union[WordDiffResult, LineDiffResult, JsonDiffResult]


# ═══════════════════════════════════════════════════════════════════
#  WORD / LINE DIFF
# ═══════════════════════════════════════════════════════════════════

def _tally(parts: list[DiffPart]) -> tuple[float, float, TextChanges]:
    """(diff_score, total cost, changes) of an edit script."""
    added = sum(1 for p in parts if p.op == DiffOp.INSERT)
    removed = sum(1 for p in parts if p.op == DiffOp.DELETE)
    modified = sum(1 for p in parts if p.op == DiffOp.REPLACE)
    cost = sum(p.cost for p in parts if p.op != DiffOp.EQUAL)
    score = cost / len(parts) if parts else 0.0
    return score, cost, TextChanges(added, removed, modified)


def diff_words(reference: str, candidate: str,
               threshold: float = WORD_FUZZY_THRESHOLD) -> WordDiffResult:
    """
    Word-level diff of a candidate against the reference.

    Substituting a word for a near-identical one (similarity above
    `threshold`) costs half as much as substituting an unrelated word.
    """
    require_str("reference", reference)
    require_str("candidate", candidate)

    ref_words = tokenize_words(reference)
    cand_words = tokenize_words(candidate)
    parts = align(ref_words, cand_words, threshold=threshold)
    score, cost, changes = _tally(parts)

    return WordDiffResult(
        diff_score=score,
        similarity=1 - score,
        diff_html=render_words(parts),
        levenshtein_distance=cost,
        word_count=TokenCount(len(ref_words), len(cand_words)),
        changes=changes,
    )


def _same_line(a: str, b: str) -> bool:
    return a.strip() == b.strip()


def diff_lines(reference: str, candidate: str,
               threshold: float = LINE_FUZZY_THRESHOLD) -> LineDiffResult:
    """
    Line-level diff.  Lines are equal when they match after stripping
    surrounding whitespace; a soft match needs similarity above `threshold`.
    """
    require_str("reference", reference)
    require_str("candidate", candidate)

    ref_lines = tokenize_lines(reference)
    cand_lines = tokenize_lines(candidate)
    parts = align(ref_lines, cand_lines, equal=_same_line, threshold=threshold)
    score, cost, changes = _tally(parts)

    return LineDiffResult(
        diff_score=score,
        similarity=1 - score,
        diff_html=render_lines(parts),
        levenshtein_distance=cost,
        line_count=TokenCount(len(ref_lines), len(cand_lines)),
        changes=changes,
    )


# ═══════════════════════════════════════════════════════════════════
#  JSON DIFF
# ═══════════════════════════════════════════════════════════════════

def count_json_changes(ref: JValue, cand: JValue,
                       changes: Optional[JsonChanges] = None) -> JsonChanges:
    """
    Walk two canonical trees and tally what differs.

    Arrays are reconciled element-wise (near-duplicates count as equal);
    object keys on one side only are additions/removals; unequal leaves
    are structural changes, and value changes when both are primitives
    of the same JSON type.
    """
    if changes is None:
        changes = JsonChanges()

    if deep_equal(ref, cand):
        return changes

    if isinstance(ref, JArray) and isinstance(cand, JArray):
        for entry in reconcile_arrays(ref.items, cand.items):
            if entry.op == ArrayOp.ADDED:
                changes.additions += 1
            elif entry.op == ArrayOp.REMOVED:
                changes.removals += 1
        return changes

    if isinstance(ref, JObject) and isinstance(cand, JObject):
        for k in sorted(set(ref.entries) | set(cand.entries)):
            if k not in cand.entries:
                changes.removals += 1
            elif k not in ref.entries:
                changes.additions += 1
            else:
                count_json_changes(ref.entries[k], cand.entries[k], changes)
        return changes

    changes.structural_changes += 1
    if isinstance(ref, JAtom) and isinstance(cand, JAtom) and kind(ref) == kind(cand):
        changes.value_changes += 1
    return changes


def diff_json(reference: str, candidate: str) -> JsonDiffResult:
    """
    Structural comparison of two JSON documents.

    Both sides are parsed (markdown fences tolerated) and canonicalized;
    the similarity is the fraction of leaf key-value pairs that match
    exactly.  Unparseable input yields NaN scores and parse errors
    instead of an exception.
    """
    require_str("reference", reference)
    require_str("candidate", candidate)

    valid_ref = is_valid_json(reference)
    valid_cand = is_valid_json(candidate)

    ref_canon = canonicalize(reference)
    cand_canon = canonicalize(candidate)
    errors = ParseErrors(reference=ref_canon.error, candidate=cand_canon.error)

    if not valid_ref:
        logger.debug("Reference is not valid JSON: %s", ref_canon.error)
        return JsonDiffResult(
            diff_score=NAN,
            similarity=NAN,
            diff_html="",
            normalized_reference=ref_canon.normalized_text,
            normalized_candidate=cand_canon.normalized_text,
            is_valid_json=Validity(reference=False, candidate=False),
            parse_errors=errors,
        )

    if not valid_cand:
        logger.debug("Candidate is not valid JSON: %s", cand_canon.error)
        return JsonDiffResult(
            diff_score=NAN,
            similarity=NAN,
            diff_html="",
            normalized_reference=ref_canon.normalized_text,
            normalized_candidate=cand_canon.normalized_text,
            is_valid_json=Validity(reference=True, candidate=False),
            parse_errors=errors,
        )

    ref_tree, cand_tree = ref_canon.tree, cand_canon.tree
    similarity = object_similarity(ref_tree, cand_tree)

    return JsonDiffResult(
        diff_score=1 - similarity,
        similarity=similarity,
        diff_html=render_json(ref_tree, cand_tree),
        normalized_reference=ref_canon.normalized_text,
        normalized_candidate=cand_canon.normalized_text,
        is_valid_json=Validity(reference=True, candidate=True),
        parse_errors=errors,
        changes=count_json_changes(ref_tree, cand_tree),
    )


# ═══════════════════════════════════════════════════════════════════
#  AUXILIARY METRICS
# ═══════════════════════════════════════════════════════════════════

def semantic_overlap(reference: str, candidate: str) -> float:
    """Jaccard overlap of the lower-cased word sets (0.0 when both are empty)."""
    require_str("reference", reference)
    require_str("candidate", candidate)
    ref_words = set(tokenize_words(reference.lower()))
    cand_words = set(tokenize_words(candidate.lower()))
    union = ref_words | cand_words
    if not union:
        return 0.0
    return len(ref_words & cand_words) / len(union)


def _percent(value: float) -> int:
    # Half-up, not banker's rounding
    return int(math.floor(value * 100 + 0.5))


def diff_summary(result: DiffResult) -> str:
    """
    One-line human summary, e.g. "2 added, 1 modified (83% similar)".

    "Perfect match" only for a similarity of 1.  JSON leaves that differ
    in value or in type both count as modified; drift absorbed by the
    array reconciler shows only in the percentage.
    """
    if isinstance(result, JsonDiffResult):
        if not result.comparable:
            return "Not comparable as JSON"
        counts = [
            (result.changes.additions, "added"),
            (result.changes.removals, "removed"),
            (result.changes.structural_changes, "modified"),
        ]
    else:
        counts = [
            (result.changes.added, "added"),
            (result.changes.removed, "removed"),
            (result.changes.modified, "modified"),
        ]

    if result.similarity == 1:
        return "Perfect match"

    percent = f"{_percent(result.similarity)}% similar"
    parts = [f"{n} {label}" for n, label in counts if n > 0]
    if not parts:
        return percent
    return f"{', '.join(parts)} ({percent})"


# ═══════════════════════════════════════════════════════════════════
#  MODE SELECTION
# ═══════════════════════════════════════════════════════════════════

MODES = ("auto", "word", "line", "json")


@dataclass(frozen=True)
class Comparison:
    """
    A comparison ready for ranking.

    `similarity` is the score to rank by.  When a JSON comparison was not
    possible, `result` is the word diff used in its place and `fallback`
    holds the JSON result that explains why.
    """
    mode: str
    result: DiffResult
    similarity: float
    fallback: Optional[JsonDiffResult] = None


def compare(reference: str, candidate: str, mode: str = "auto") -> Comparison:
    """
    Compare with the requested engine.

    "auto" uses JSON when the reference is valid JSON and words otherwise.
    A JSON comparison with an unparseable side falls back to words.
    """
    require_str("reference", reference)
    require_str("candidate", candidate)
    if mode not in MODES:
        raise ValueError(f"Unknown comparison mode {mode!r}; expected one of {MODES}")

    if mode == "auto":
        mode = "json" if is_valid_json(reference) else "word"

    if mode == "word":
        result = diff_words(reference, candidate)
        return Comparison("word", result, result.similarity)

    if mode == "line":
        result = diff_lines(reference, candidate)
        return Comparison("line", result, result.similarity)

    json_result = diff_json(reference, candidate)
    if json_result.comparable:
        return Comparison("json", json_result, json_result.similarity)

    logger.debug("JSON comparison not possible (%s); ranking by word diff", json_result.is_valid_json)
    word_result = diff_words(reference, candidate)
    return Comparison("word", word_result, word_result.similarity, fallback=json_result)
