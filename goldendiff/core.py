"""
goldendiff.core — Alignment and structural similarity
=====================================================

§1  JSON VALUES
───────────────

Parsed JSON is represented as a closed sum type:

    JAtom(v)                    v ∈ {None, bool, int, float, str}
    JArray((a₁, ..., aₙ))       ordered
    JObject({k₁: v₁, ...})      keys are strings; insertion order is the
                                canonical order once normalized

Every recursive function below dispatches over exactly these three
variants.  bool is never a number (Python's True == 1 is guarded).


§2  TOKEN ALIGNMENT
───────────────────

Word and line diffs share one DP over token sequences R (reference)
and C (candidate):

    D[0][j] = j                 (INSERT)
    D[i][0] = i                 (DELETE)
    D[i][j] = D[i-1][j-1]                       if rᵢ ≡ cⱼ   (EQUAL)
            = min( D[i-1][j-1] + sub(rᵢ, cⱼ),                (REPLACE)
                   D[i-1][j]   + 1,                          (DELETE)
                   D[i][j-1]   + 1 )                         (INSERT)

    sub(r, c) = 0.5  if similarity(r, c) > threshold
              = 1.0  otherwise

The op chosen at each cell is stored during the forward pass (ties go
REPLACE, then DELETE, then INSERT) and the trace-back simply follows
the stored ops.  A REPLACE keeps the cost it was charged.


§3  GRANULAR SIMILARITY
───────────────────────

granular(a, b) counts leaf key-value pairs reachable in either tree:

    kind mismatch               → (0, 1)
    primitives                  → (1, 1) if equal else (0, 1)
    arrays                      → Σ granular(aᵢ, bᵢ) for i < min(len)
                                  + (0, 1) per extra element
    objects                     → Σ granular(a[k], b[k]) for shared k
                                  + (0, 1) per key on one side only
    [] vs [], {} vs {}          → (1, 1)

object_similarity(a, b) = 1 if deep_equal(a, b) else matches / total.


§4  ARRAY RECONCILIATION
────────────────────────

reconcile_arrays builds an LCS table where a "match" is deep equality,
then traces back treating pairs with object_similarity > threshold as
EQUAL as well.  Near-duplicates therefore collapse into non-events:
minor value drift inside array elements is deliberately not reported
as an add/remove pair.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, NamedTuple, Optional, Sequence

logger = logging.getLogger(__name__)


# Fuzzy-match thresholds and costs
WORD_FUZZY_THRESHOLD = 0.8
LINE_FUZZY_THRESHOLD = 0.9
ARRAY_MATCH_THRESHOLD = 0.8
FUZZY_REPLACE_COST = 0.5

# Fields that make an array of objects sortable during canonicalization
SORT_KEY_FIELDS = ("id", "name", "key")

# Deeper documents are rejected at parse time; every tree walk below recurses
MAX_NESTING_DEPTH = 100


# ═══════════════════════════════════════════════════════════════════
#  JSON VALUE TYPES
# ═══════════════════════════════════════════════════════════════════

class JValue:
    """Base class for JSON values.  Not instantiated directly."""
    __slots__ = ()


@dataclass(frozen=True, slots=True)
class JAtom(JValue):
    """
    A JSON leaf: null, boolean, number or string.

    Examples:
        JAtom(None)
        JAtom(True)
        JAtom(42)
        JAtom("hello")
    """
    val: Any

    def __repr__(self) -> str:
        return f"JAtom({self.val!r})"


@dataclass(frozen=True, slots=True)
class JArray(JValue):
    """An ordered JSON array."""
    items: tuple[JValue, ...]

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        if len(self.items) <= 5:
            return f"JArray({list(self.items)})"
        return f"JArray([{self.items[0]!r}, ..., {self.items[-1]!r}] len={len(self.items)})"


@dataclass(frozen=True, slots=True)
class JObject(JValue):
    """
    A JSON object.  Equality ignores key order; the stored order is
    only meaningful for rendering.
    """
    entries: dict[str, JValue]

    def __init__(self, entries: dict[str, JValue]):
        object.__setattr__(self, 'entries', dict(entries))

    def __hash__(self):
        return hash(frozenset(self.entries.items()))

    def __repr__(self) -> str:
        if len(self.entries) <= 3:
            return f"JObject({self.entries})"
        return f"JObject({{...}} len={len(self.entries)})"


def kind(value: JValue) -> str:
    """Name the JSON type of a value: null, bool, number, string, array or object."""
    if isinstance(value, JAtom):
        v = value.val
        if v is None:
            return "null"
        if type(v) is bool:
            return "bool"
        if isinstance(v, (int, float)):
            return "number"
        if isinstance(v, str):
            return "string"
        raise TypeError(f"Unsupported atom payload: {type(v).__name__}")
    if isinstance(value, JArray):
        return "array"
    if isinstance(value, JObject):
        return "object"
    raise TypeError(f"Unknown JValue type: {type(value)}")


# ═══════════════════════════════════════════════════════════════════
#  LEVENSHTEIN CORE
# ═══════════════════════════════════════════════════════════════════

def edit_distance(s: str, t: str) -> int:
    """Standard Levenshtein distance between two strings."""
    m, n = len(s), len(t)
    if m == 0:
        return n
    if n == 0:
        return m

    # Space-optimized DP (two rows)
    prev = list(range(n + 1))
    curr = [0] * (n + 1)

    for i in range(1, m + 1):
        curr[0] = i
        for j in range(1, n + 1):
            cost = 0 if s[i - 1] == t[j - 1] else 1
            curr[j] = min(
                prev[j] + 1,        # deletion
                curr[j - 1] + 1,    # insertion
                prev[j - 1] + cost, # substitution
            )
        prev, curr = curr, prev

    return prev[n]


def similarity(s: str, t: str) -> float:
    """
    Levenshtein similarity in [0, 1]:

        1 - edit_distance(s, t) / max(len(s), len(t), 1)

    Two empty strings are identical (1.0).
    """
    if s == t:
        return 1.0
    return 1.0 - edit_distance(s, t) / max(len(s), len(t), 1)


def bounded_edit_distance(s: str, t: str, limit: int) -> int:
    """
    edit_distance(s, t) when it is at most `limit`, otherwise limit + 1.

    Only the diagonal band |i - j| ≤ limit is filled, and the scan stops
    as soon as a whole row exceeds the limit, so the cost is
    O(limit · min(len)) rather than O(len(s) · len(t)).
    """
    m, n = len(s), len(t)
    over = limit + 1
    if limit < 0 or abs(m - n) > limit:
        return over
    if m == 0 or n == 0:
        return max(m, n)

    prev = [j if j <= limit else over for j in range(n + 1)]
    for i in range(1, m + 1):
        lo = max(1, i - limit)
        hi = min(n, i + limit)
        curr = [over] * (n + 1)
        curr[0] = i if i <= limit else over
        for j in range(lo, hi + 1):
            cost = 0 if s[i - 1] == t[j - 1] else 1
            curr[j] = min(prev[j] + 1, curr[j - 1] + 1, prev[j - 1] + cost, over)
        if min(curr[lo - 1:hi + 1]) > limit:
            return over
        prev = curr

    return prev[n]


def is_similar(s: str, t: str, threshold: float) -> bool:
    """
    similarity(s, t) > threshold, without the full O(len²) distance.

    The distance can only pass the threshold if it is below
    (1 - threshold) · max(len), so the DP is cut off one step past that.
    """
    if s == t:
        return 1.0 > threshold
    longest = max(len(s), len(t))
    limit = int((1.0 - threshold) * longest) + 1
    d = bounded_edit_distance(s, t, limit)
    if d > limit:
        return False
    return 1.0 - d / longest > threshold


# ═══════════════════════════════════════════════════════════════════
#  TOKEN ALIGNMENT (word / line diff)
# ═══════════════════════════════════════════════════════════════════

class DiffOp(Enum):
    """Operations produced by token alignment."""
    EQUAL = auto()
    DELETE = auto()
    INSERT = auto()
    REPLACE = auto()


@dataclass(frozen=True, slots=True)
class DiffPart:
    """
    One aligned unit.

    For REPLACE, `reference_text` and `candidate_text` carry both sides
    and `cost` is what the DP charged (FUZZY_REPLACE_COST or 1.0).
    """
    op: DiffOp
    text: str
    reference_text: Optional[str] = None
    candidate_text: Optional[str] = None
    cost: float = 0.0

    def __repr__(self) -> str:
        if self.op == DiffOp.REPLACE:
            return f"REPLACE {self.reference_text!r} → {self.candidate_text!r} ({self.cost})"
        return f"{self.op.name} {self.text!r}"


def _exact(a: str, b: str) -> bool:
    return a == b


def align(
    reference: Sequence[str],
    candidate: Sequence[str],
    equal: Callable[[str, str], bool] = _exact,
    threshold: float = WORD_FUZZY_THRESHOLD,
) -> list[DiffPart]:
    """
    Align two token sequences and return the edit script in reference order.

    `equal` decides EQUAL cells; `threshold` is the similarity above which
    a substitution is charged FUZZY_REPLACE_COST instead of 1.0.
    """
    m = len(reference)
    n = len(candidate)

    dp = [[0.0] * (n + 1) for _ in range(m + 1)]
    ops: list[list[Optional[DiffOp]]] = [[None] * (n + 1) for _ in range(m + 1)]
    costs = [[0.0] * (n + 1) for _ in range(m + 1)]

    for j in range(1, n + 1):
        dp[0][j] = float(j)
        ops[0][j] = DiffOp.INSERT
    for i in range(1, m + 1):
        dp[i][0] = float(i)
        ops[i][0] = DiffOp.DELETE

    for i in range(1, m + 1):
        r = reference[i - 1]
        for j in range(1, n + 1):
            c = candidate[j - 1]
            if equal(r, c):
                dp[i][j] = dp[i - 1][j - 1]
                ops[i][j] = DiffOp.EQUAL
                continue

            sub = FUZZY_REPLACE_COST if is_similar(r, c, threshold) else 1.0
            replace_cost = dp[i - 1][j - 1] + sub
            delete_cost = dp[i - 1][j] + 1.0
            insert_cost = dp[i][j - 1] + 1.0

            best = min(replace_cost, delete_cost, insert_cost)
            dp[i][j] = best
            if best == replace_cost:
                ops[i][j] = DiffOp.REPLACE
                costs[i][j] = sub
            elif best == delete_cost:
                ops[i][j] = DiffOp.DELETE
            else:
                ops[i][j] = DiffOp.INSERT

    # Trace back along the stored ops
    parts: list[DiffPart] = []
    i, j = m, n
    while i > 0 or j > 0:
        op = ops[i][j]
        if op == DiffOp.EQUAL:
            parts.append(DiffPart(DiffOp.EQUAL, reference[i - 1]))
            i -= 1
            j -= 1
        elif op == DiffOp.REPLACE:
            parts.append(DiffPart(DiffOp.REPLACE, candidate[j - 1],
                                  reference_text=reference[i - 1],
                                  candidate_text=candidate[j - 1],
                                  cost=costs[i][j]))
            i -= 1
            j -= 1
        elif op == DiffOp.DELETE:
            parts.append(DiffPart(DiffOp.DELETE, reference[i - 1], cost=1.0))
            i -= 1
        else:
            parts.append(DiffPart(DiffOp.INSERT, candidate[j - 1], cost=1.0))
            j -= 1

    parts.reverse()
    return parts


# ═══════════════════════════════════════════════════════════════════
#  DEEP EQUALITY & GRANULAR SIMILARITY
# ═══════════════════════════════════════════════════════════════════

class Granular(NamedTuple):
    """Leaf key-value pairs that match, out of all pairs seen."""
    matches: int
    total: int


def _atoms_equal(a: Any, b: Any, tolerance: float = 0.0) -> bool:
    a_is_bool = type(a) is bool
    b_is_bool = type(b) is bool
    if a_is_bool or b_is_bool:
        return a_is_bool and b_is_bool and a is b

    if a is None or b is None:
        return a is b

    a_is_num = isinstance(a, (int, float))
    b_is_num = isinstance(b, (int, float))
    if a_is_num and b_is_num:
        if tolerance > 0:
            return abs(a - b) <= tolerance
        return a == b

    if isinstance(a, str) and isinstance(b, str):
        return a == b

    return False


def deep_equal(a: JValue, b: JValue, tolerance: float = 0.0) -> bool:
    """
    Strict structural equality.

    Numbers compare within `tolerance` when it is positive, exactly
    otherwise.  Arrays are order-sensitive; objects ignore key order.
    """
    if a is b:
        return True

    if isinstance(a, JAtom) and isinstance(b, JAtom):
        return _atoms_equal(a.val, b.val, tolerance)

    if isinstance(a, JArray) and isinstance(b, JArray):
        if len(a.items) != len(b.items):
            return False
        return all(deep_equal(x, y, tolerance) for x, y in zip(a.items, b.items))

    if isinstance(a, JObject) and isinstance(b, JObject):
        a_keys = set(a.entries)
        b_keys = set(b.entries)
        if a_keys != b_keys:
            logger.debug("Different key sets: %s vs %s", sorted(a_keys), sorted(b_keys))
            return False
        for k in sorted(a_keys):
            if not deep_equal(a.entries[k], b.entries[k], tolerance):
                logger.debug("Key %r not equal", k)
                return False
        return True

    return False


def granular(a: JValue, b: JValue) -> Granular:
    """Count matching leaf key-value pairs over the union of both trees."""
    ka, kb = kind(a), kind(b)
    if ka != kb:
        return Granular(0, 1)

    if isinstance(a, JAtom):
        return Granular(1 if _atoms_equal(a.val, b.val) else 0, 1)

    if isinstance(a, JArray):
        longest = max(len(a.items), len(b.items))
        if longest == 0:
            return Granular(1, 1)
        matches = total = 0
        for x, y in zip(a.items, b.items):
            g = granular(x, y)
            matches += g.matches
            total += g.total
        # Positional only: every element past the shorter side is a miss
        total += longest - min(len(a.items), len(b.items))
        return Granular(matches, total)

    # Objects
    all_keys = set(a.entries) | set(b.entries)
    if not all_keys:
        return Granular(1, 1)
    matches = total = 0
    for k in all_keys:
        if k in a.entries and k in b.entries:
            g = granular(a.entries[k], b.entries[k])
            matches += g.matches
            total += g.total
        else:
            total += 1
    return Granular(matches, total)


def object_similarity(a: JValue, b: JValue) -> float:
    """Similarity in [0, 1]: 1.0 when deeply equal, else the granular match ratio."""
    if deep_equal(a, b):
        return 1.0
    g = granular(a, b)
    if g.total == 0:
        return 0.0
    return g.matches / g.total


# ═══════════════════════════════════════════════════════════════════
#  LCS ARRAY RECONCILER
# ═══════════════════════════════════════════════════════════════════

class ArrayOp(Enum):
    """Element-level array edits."""
    EQUAL = auto()
    ADDED = auto()
    REMOVED = auto()
    MOVED = auto()      # Reserved; reconcile_arrays never emits it


@dataclass(frozen=True, slots=True)
class ArrayEntry:
    """One reconciled array element with its index on each side."""
    op: ArrayOp
    value: JValue
    old_index: Optional[int] = None
    new_index: Optional[int] = None

    def __repr__(self) -> str:
        if self.op == ArrayOp.ADDED:
            return f"ADDED [{self.new_index}]: {self.value!r}"
        if self.op == ArrayOp.REMOVED:
            return f"REMOVED [{self.old_index}]: {self.value!r}"
        return f"{self.op.name} [{self.old_index}→{self.new_index}]: {self.value!r}"


def reconcile_arrays(
    reference: Sequence[JValue],
    candidate: Sequence[JValue],
    threshold: float = ARRAY_MATCH_THRESHOLD,
) -> list[ArrayEntry]:
    """
    Order-independent element matching between two arrays.

    Elements that are deeply equal, or whose object_similarity exceeds
    `threshold`, are reported as EQUAL (carrying the candidate element);
    the rest become ADDED / REMOVED as dictated by the LCS table.
    """
    m = len(reference)
    n = len(candidate)

    equal = [[False] * n for _ in range(m)]
    sims = [[0.0] * n for _ in range(m)]
    for i in range(m):
        for j in range(n):
            equal[i][j] = deep_equal(reference[i], candidate[j])
            sims[i][j] = 1.0 if equal[i][j] else object_similarity(reference[i], candidate[j])

    lcs = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if equal[i - 1][j - 1]:
                lcs[i][j] = lcs[i - 1][j - 1] + 1
            else:
                lcs[i][j] = max(lcs[i - 1][j], lcs[i][j - 1])

    entries: list[ArrayEntry] = []
    i, j = m, n
    while i > 0 and j > 0:
        if equal[i - 1][j - 1] or sims[i - 1][j - 1] > threshold:
            entries.append(ArrayEntry(ArrayOp.EQUAL, candidate[j - 1],
                                      old_index=i - 1, new_index=j - 1))
            i -= 1
            j -= 1
        elif lcs[i][j - 1] >= lcs[i - 1][j]:
            entries.append(ArrayEntry(ArrayOp.ADDED, candidate[j - 1], new_index=j - 1))
            j -= 1
        else:
            entries.append(ArrayEntry(ArrayOp.REMOVED, reference[i - 1], old_index=i - 1))
            i -= 1

    while i > 0:
        entries.append(ArrayEntry(ArrayOp.REMOVED, reference[i - 1], old_index=i - 1))
        i -= 1
    while j > 0:
        entries.append(ArrayEntry(ArrayOp.ADDED, candidate[j - 1], new_index=j - 1))
        j -= 1

    entries.reverse()
    return entries
