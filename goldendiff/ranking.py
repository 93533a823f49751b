"""
goldendiff.ranking — Ranking several generator outputs against one golden copy.

Each comparison is a pure function of (reference, output), so the
outputs are compared concurrently and only the final sort needs all
of them:

    1. compare(reference, output, mode) for every named output, on a
       thread pool
    2. wait for all of them (optionally bounded by `timeout`)
    3. an exception or a timeout is a failed entry, never a dropped one
    4. sort successes by similarity, then by the secondary score
       (semantic_overlap by default), then by name; failures go last
"""

import concurrent.futures
import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from .compare import MODES, Comparison, compare, semantic_overlap
from .formats import require_str

logger = logging.getLogger(__name__)


@dataclass
class RankedOutput:
    """One generator's output and how it scored (or why it could not be scored)."""
    name: str
    output: str
    comparison: Optional[Comparison] = None
    secondary: float = 0.0
    error: Optional[str] = None
    rank: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def similarity(self) -> Optional[float]:
        return self.comparison.similarity if self.comparison is not None else None

    def __repr__(self) -> str:
        if not self.ok:
            return f"#{self.rank} {self.name}: FAILED ({self.error})"
        return f"#{self.rank} {self.name}: {self.similarity:.3f}"


@dataclass
class Ranking:
    """Ordered result of rank_outputs."""
    entries: list[RankedOutput]

    @property
    def best(self) -> Optional[RankedOutput]:
        return self.entries[0] if self.entries and self.entries[0].ok else None

    @property
    def failures(self) -> list[RankedOutput]:
        return [e for e in self.entries if not e.ok]

    def __repr__(self) -> str:
        return f"Ranking({len(self.entries)} outputs, {len(self.failures)} failed)"


def _score(reference: str, name: str, output: str, mode: str,
           secondary: Callable[[str, str], float]) -> RankedOutput:
    comparison = compare(reference, output, mode)
    return RankedOutput(name=name, output=output, comparison=comparison,
                        secondary=secondary(reference, output))


def rank_outputs(
    reference: str,
    outputs: Mapping[str, str],
    mode: str = "auto",
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
    secondary: Callable[[str, str], float] = semantic_overlap,
) -> Ranking:
    """
    Compare every output against `reference` and rank them best-first.

    `timeout` bounds the whole batch in seconds; comparisons still running
    when it expires are reported as failures.
    """
    require_str("reference", reference)
    for name, output in outputs.items():
        require_str(f"outputs[{name!r}]", output)
    if mode not in MODES:
        raise ValueError(f"Unknown comparison mode {mode!r}; expected one of {MODES}")

    finished: dict[str, RankedOutput] = {}
    pool = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = {
            pool.submit(_score, reference, name, output, mode, secondary): name
            for name, output in outputs.items()
        }
        done, pending = concurrent.futures.wait(futures, timeout=timeout)

        for future in done:
            name = futures[future]
            try:
                finished[name] = future.result()
            except Exception as exc:
                logger.warning("Comparison for %s failed: %s", name, exc)
                finished[name] = RankedOutput(name=name, output=outputs[name],
                                              error=f"{type(exc).__name__}: {exc}")

        for future in pending:
            name = futures[future]
            future.cancel()
            logger.warning("Comparison for %s timed out after %ss", name, timeout)
            finished[name] = RankedOutput(name=name, output=outputs[name],
                                          error=f"timed out after {timeout}s")
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    ok = sorted(
        (e for e in finished.values() if e.ok),
        key=lambda e: (-e.comparison.similarity, -e.secondary, e.name),
    )
    failed = sorted((e for e in finished.values() if not e.ok), key=lambda e: e.name)

    entries = ok + failed
    for position, entry in enumerate(entries, start=1):
        entry.rank = position
    return Ranking(entries)
