"""
Per-search iteration state and the phase machine.

    INIT -> FETCHING -> SCORING -> FILTERING -> DECIDING -> RELAXING -> FETCHING
                                                        |
                                                        +-> DONE

Any phase may jump to DONE (cancellation, timeout, error). An
IterationState lives for exactly one search and is never shared.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set

from litsearch.core.exceptions import SearchError
from litsearch.schemas.documents import CandidateDocument
from litsearch.schemas.search import AcademicField

from .channel import CancellationToken


class Phase(str, Enum):
    INIT = "INIT"
    FETCHING = "FETCHING"
    SCORING = "SCORING"
    FILTERING = "FILTERING"
    DECIDING = "DECIDING"
    RELAXING = "RELAXING"
    DONE = "DONE"


TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.INIT: frozenset({Phase.FETCHING, Phase.DONE}),
    Phase.FETCHING: frozenset({Phase.SCORING, Phase.DONE}),
    Phase.SCORING: frozenset({Phase.FILTERING, Phase.DONE}),
    Phase.FILTERING: frozenset({Phase.DECIDING, Phase.DONE}),
    Phase.DECIDING: frozenset({Phase.RELAXING, Phase.DONE}),
    Phase.RELAXING: frozenset({Phase.FETCHING, Phase.DONE}),
    Phase.DONE: frozenset(),
}


def transition(current: Phase, target: Phase) -> Phase:
    """
    Validate a phase change.

    Raises:
        SearchError: If the move is not an edge of the phase graph
    """
    if target not in TRANSITIONS[current]:
        raise SearchError(f"Illegal phase transition {current.value} -> {target.value}")
    return target


@dataclass
class IterationState:
    """
    Everything one in-flight search knows.

    The pool is keyed by dedup key so re-fetched duplicates merge instead
    of double-counting. `last_filtered` is the output of the most recent
    completed filter pass; cancellation returns it.
    """
    search_id: str
    query: str
    target_count: int
    field: AcademicField
    field_confidence: float
    threshold: float
    cancel_token: CancellationToken
    matched_keywords: List[str] = field(default_factory=list)
    pool: Dict[str, CandidateDocument] = field(default_factory=dict)
    iteration: int = 0
    exhausted_sources: Set[str] = field(default_factory=set)
    source_yields: Dict[str, float] = field(default_factory=dict)
    evicted_keys: Set[str] = field(default_factory=set)
    last_filtered: List[CandidateDocument] = field(default_factory=list)
    last_filtered_threshold: Optional[float] = None
    previous_filtered_count: int = 0
    previous_gain: int = 0
    phase: Phase = Phase.INIT
    started_at: float = field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_token.is_cancelled

    def advance(self, target: Phase) -> None:
        self.phase = transition(self.phase, target)

    def filter(self, threshold: float) -> List[CandidateDocument]:
        """Scored pool documents at or above the threshold, best first."""
        passing = [
            d for d in self.pool.values()
            if d.is_scored and d.overall_score >= threshold
        ]
        passing.sort(key=lambda d: d.overall_score, reverse=True)
        return passing

    def unscored(self) -> List[CandidateDocument]:
        return [d for d in self.pool.values() if not d.is_scored]

    def record_filter_pass(self, filtered: List[CandidateDocument]) -> None:
        self.last_filtered = filtered
        self.last_filtered_threshold = self.threshold
