"""
Iterative search orchestrator.

Drives the fetch -> score -> filter -> decide loop for one search:

1. Fetch every non-exhausted source in parallel, with a fetch cap that
   grows geometrically per iteration
2. Merge into the accumulating pool (deduplicated, never discarded)
3. Score every pool document that lacks a score
4. Filter the whole pool by the current threshold
5. Stop, or relax the threshold and go again

Stop checks run in a fixed order so exactly one reason wins:
TARGET_REACHED, MAX_ITERATIONS, TIMEOUT, SOURCES_EXHAUSTED,
DIMINISHING_RETURNS, MIN_THRESHOLD. Cancellation short-circuits from
anywhere and returns the last completed filter pass.
"""
import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional, Sequence

from litsearch.core.exceptions import SearchError
from litsearch.core.logging import get_logger, get_search_logger
from litsearch.schemas.documents import CandidateDocument
from litsearch.schemas.events import (
    IterationCompleteEvent,
    IterationProgressEvent,
    IterationStartEvent,
    SearchCompleteEvent,
    SearchErrorEvent,
)
from litsearch.schemas.search import (
    IterationConfig,
    SearchRequest,
    SearchResult,
    StopDecision,
    StopReason,
)
from litsearch.services.sources.base import BaseSource

from .channel import CancellationToken, ProgressChannel
from .dedup import document_key, merge_into
from .field_classifier import FieldClassifier
from .scoring import HybridScorer
from .state import IterationState, Phase
from .thresholds import AdaptiveThresholdService

logger = get_logger(__name__)


class _Cancelled(Exception):
    """Internal signal: the cancel token fired while awaiting."""


@dataclass
class SourceOutcome:
    source: str
    requested: int
    documents: List[CandidateDocument]
    error: Optional[str] = None

    @property
    def yield_ratio(self) -> float:
        return len(self.documents) / self.requested if self.requested else 0.0


@dataclass
class IterationOutcome:
    """What one iteration produced, as seen by the stop check."""
    iteration: int
    filtered_count: int
    new_unique: int
    newly_qualifying: int
    iteration_elapsed: float
    total_elapsed: float


def evaluate_stop(
    state: IterationState,
    outcome: IterationOutcome,
    config: IterationConfig,
    total_sources: int,
    at_floor: bool,
) -> StopReason:
    """
    Stop verdict for one iteration.

    Returns RELAXING_THRESHOLD when none of the stop conditions hold.
    """
    if outcome.filtered_count >= state.target_count:
        return StopReason.TARGET_REACHED
    if outcome.iteration >= config.max_iterations:
        return StopReason.MAX_ITERATIONS
    if (
        outcome.iteration_elapsed >= config.iteration_timeout_seconds
        or outcome.total_elapsed >= config.search_timeout_seconds
    ):
        return StopReason.TIMEOUT
    if total_sources == 0 or len(state.exhausted_sources) >= total_sources:
        return StopReason.SOURCES_EXHAUSTED
    # Skipped on a pure re-filter pass (nothing new fetched)
    if (
        outcome.iteration > 1
        and outcome.new_unique > 0
        and outcome.newly_qualifying < config.diminishing_returns_ratio * state.previous_gain
    ):
        return StopReason.DIMINISHING_RETURNS
    if at_floor:
        return StopReason.MIN_THRESHOLD
    return StopReason.RELAXING_THRESHOLD


class IterationOrchestrator:
    """
    Runs iterative searches.

    Holds only collaborators and configuration; all per-search data
    lives in an IterationState created by run() and dropped when it
    returns.
    """

    def __init__(
        self,
        sources: Sequence[BaseSource],
        classifier: Optional[FieldClassifier] = None,
        threshold_service: Optional[AdaptiveThresholdService] = None,
        scorer: Optional[HybridScorer] = None,
        config: Optional[IterationConfig] = None,
    ):
        self.sources = list(sources)
        self.config = config or IterationConfig.default()
        self.classifier = classifier or FieldClassifier()
        self.thresholds = threshold_service or AdaptiveThresholdService(
            floor=self.config.min_threshold, classifier=self.classifier
        )
        self.scorer = scorer or HybridScorer()

    async def run(
        self,
        request: SearchRequest,
        channel: Optional[ProgressChannel] = None,
        search_id: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> SearchResult:
        """
        Run one search to a stop decision.

        Events go to `channel` when given; the channel is closed on return.

        Raises:
            SearchError: Only for unexpected internal failures, after a
                search_error event has been emitted
        """
        search_id = search_id or (channel.search_id if channel else uuid.uuid4().hex[:12])
        token = token or (channel.token if channel else CancellationToken())

        try:
            state = self._initialize(search_id, request, token)
            stop = await self._loop(state, channel)
            result = self._build_result(state, stop)
            self._log_summary(result)
            self._emit(channel, SearchCompleteEvent(search_id=search_id, result=result))
            return result
        except Exception as e:
            get_search_logger(__name__, search_id).exception(f"search failed: {e}")
            self._emit(channel, SearchErrorEvent(search_id=search_id, message=str(e) or type(e).__name__))
            raise SearchError(f"Search {search_id} failed: {e}") from e
        finally:
            if channel is not None:
                channel.close()

    def _initialize(self, search_id: str, request: SearchRequest, token: CancellationToken) -> IterationState:
        detection = self.classifier.classify(request.query)
        threshold = self.thresholds.initial_threshold(detection.field)

        logger.info(f"\n{'=' * 60}")
        logger.info(f"ITERATIVE SEARCH [{search_id}]: {request.query}")
        logger.info(
            f"Field: {detection.field.value} (confidence {detection.confidence:.2f}), "
            f"initial threshold {threshold:g}, target {request.target_count}"
        )
        logger.info(f"{'=' * 60}")

        return IterationState(
            search_id=search_id,
            query=request.query,
            target_count=request.target_count,
            field=detection.field,
            field_confidence=detection.confidence,
            matched_keywords=list(detection.matched_keywords),
            threshold=threshold,
            cancel_token=token,
        )

    async def _loop(self, state: IterationState, channel: Optional[ProgressChannel]) -> StopDecision:
        config = self.config

        while True:
            if state.is_cancelled:
                return self._cancelled(state, channel, mid_iteration=False)

            state.iteration += 1
            state.advance(Phase.FETCHING)
            iteration_started = time.monotonic()
            deadline = min(
                iteration_started + config.iteration_timeout_seconds,
                state.started_at + config.search_timeout_seconds,
            )
            fetch_limit = config.fetch_limit_for(state.iteration)

            self._emit(channel, IterationStartEvent(
                search_id=state.search_id,
                iteration=state.iteration,
                total_iterations=config.max_iterations,
                fetch_limit=fetch_limit,
                threshold=state.threshold,
                field=state.field,
                papers_found_so_far=len(state.filter(state.threshold)),
                target_papers=state.target_count,
            ))

            try:
                fetched = await self._fetch(state, fetch_limit, deadline)
                new_unique = merge_into(
                    state.pool,
                    [d for d in fetched if document_key(d) not in state.evicted_keys],
                )

                state.advance(Phase.SCORING)
                await self._score_pending(state, deadline)
            except _Cancelled:
                return self._cancelled(state, channel)

            self._enforce_pool_cap(state)

            state.advance(Phase.FILTERING)
            filtered = state.filter(state.threshold)
            state.record_filter_pass(filtered)
            newly_qualifying = max(len(filtered) - state.previous_filtered_count, 0)
            yield_rate = newly_qualifying / new_unique if new_unique else 0.0

            self._emit(channel, IterationProgressEvent(
                search_id=state.search_id,
                iteration=state.iteration,
                papers_found=len(filtered),
                new_papers_this_iteration=new_unique,
                yield_rate=round(yield_rate, 4),
            ))

            state.advance(Phase.DECIDING)
            outcome = IterationOutcome(
                iteration=state.iteration,
                filtered_count=len(filtered),
                new_unique=new_unique,
                newly_qualifying=newly_qualifying,
                iteration_elapsed=time.monotonic() - iteration_started,
                total_elapsed=state.elapsed,
            )
            reason = evaluate_stop(
                state, outcome, config, len(self.sources), self.thresholds.is_at_floor(state.threshold)
            )

            logger.info(
                f"Iteration {state.iteration}: {len(filtered)}/{state.target_count} at threshold "
                f"{state.threshold:g} | new unique {new_unique} | yield {yield_rate:.1%} | "
                f"pool {len(state.pool)} | exhausted {sorted(state.exhausted_sources)} | {reason.value}"
            )

            state.previous_gain = newly_qualifying
            state.previous_filtered_count = len(filtered)

            if reason == StopReason.RELAXING_THRESHOLD:
                decision = self.thresholds.next_threshold(
                    state.threshold, state.field, state.iteration, len(filtered), state.target_count
                )
                if decision.threshold is None:
                    reason = StopReason.MIN_THRESHOLD
                else:
                    self._emit_complete(channel, state, len(filtered), None)
                    state.advance(Phase.RELAXING)
                    state.threshold = decision.threshold
                    logger.info(f"  {decision.reason}")
                    continue

            self._emit_complete(channel, state, len(filtered), reason)
            state.advance(Phase.DONE)
            return StopDecision(reason=reason, iteration=state.iteration, threshold=state.threshold)

    async def _race(self, awaitable: Awaitable, token: CancellationToken, timeout: float) -> Any:
        """
        Await `awaitable` against cancellation and a timeout.

        Raises:
            _Cancelled: If the token fires first
            asyncio.TimeoutError: If the timeout expires first
        """
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, timeout=max(timeout, 0), return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()

        if task in done:
            return task.result()
        task.cancel()
        if token.is_cancelled:
            raise _Cancelled()
        raise asyncio.TimeoutError()

    async def _fetch_one(self, source: BaseSource, query: str, limit: int) -> SourceOutcome:
        try:
            documents = await source.search(query, limit)
            return SourceOutcome(source=source.name, requested=limit, documents=list(documents))
        except Exception as e:
            logger.warning(f"{source.name} failed: {e}")
            return SourceOutcome(source=source.name, requested=limit, documents=[], error=str(e))

    async def _fetch(self, state: IterationState, limit: int, deadline: float) -> List[CandidateDocument]:
        """
        Fan out to every non-exhausted source.

        Sources still running at the deadline are abandoned and marked
        exhausted. Returns the documents from sources that finished.

        Raises:
            _Cancelled: If cancellation arrives while sources are running
        """
        active = [s for s in self.sources if s.name not in state.exhausted_sources]
        if not active:
            return []

        pending = {
            asyncio.ensure_future(self._fetch_one(source, state.query, limit)): source
            for source in active
        }
        waiter = asyncio.ensure_future(state.cancel_token.wait())
        outcomes: List[SourceOutcome] = []
        try:
            while pending:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                done, _ = await asyncio.wait(
                    set(pending) | {waiter}, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
                if waiter in done:
                    for task in pending:
                        task.cancel()
                    get_search_logger(__name__, state.search_id).info(
                        f"cancelled during fetch, abandoning {len(pending)} source call(s)"
                    )
                    raise _Cancelled()
                for task in done:
                    pending.pop(task)
                    outcomes.append(task.result())
        finally:
            waiter.cancel()

        for task, source in pending.items():
            task.cancel()
            logger.warning(f"{source.name} did not finish before the iteration deadline")
            state.exhausted_sources.add(source.name)
            state.source_yields[source.name] = 0.0

        documents: List[CandidateDocument] = []
        for outcome in outcomes:
            state.source_yields[outcome.source] = outcome.yield_ratio
            if outcome.error is not None or outcome.yield_ratio < self.config.source_exhaustion_ratio:
                state.exhausted_sources.add(outcome.source)
            documents.extend(outcome.documents)
            logger.debug(f"{outcome.source}: {len(outcome.documents)}/{outcome.requested}")
        return documents

    async def _score_pending(self, state: IterationState, deadline: float) -> None:
        """
        Score every pool document that has no overall score yet.

        On timeout or batch failure the same batch is rescored without
        embeddings, and only if that fails too is each document scored on
        its own against the batch. Documents that still cannot be scored
        stay unscored and are left out of this filter pass.

        Raises:
            _Cancelled: If cancellation arrives while scoring
        """
        pending = state.unscored()
        if not pending:
            return

        remaining = deadline - time.monotonic()
        try:
            await self._race(
                self.scorer.score_batch(pending, state.query), state.cancel_token, remaining
            )
            return
        except _Cancelled:
            raise
        except asyncio.TimeoutError:
            logger.warning(
                f"Semantic scoring of {len(pending)} documents missed the iteration deadline, "
                f"scoring without embeddings"
            )
        except Exception as e:
            logger.warning(f"Batch scoring failed, retrying without embeddings: {e}")

        try:
            self.scorer.score_batch_offline(pending, state.query)
            return
        except Exception as e:
            logger.warning(f"Offline batch scoring failed, falling back to per-document scoring: {e}")

        failed = 0
        for document in pending:
            if document.is_scored:
                continue
            try:
                self.scorer.score_offline(document, state.query, reference=pending)
            except Exception as e:
                failed += 1
                document.overall_score = None
                logger.debug(f"Could not score '{document.title[:50]}': {e}")
        if failed:
            logger.warning(f"{failed} document(s) excluded from this pass: scoring failed")

    def _enforce_pool_cap(self, state: IterationState) -> None:
        """Evict lowest-scoring documents below the threshold once the pool is over the cap."""
        if len(state.pool) <= self.config.max_pool_size:
            return

        candidates = [
            (key, d) for key, d in state.pool.items()
            if not d.is_scored or d.overall_score < state.threshold
        ]
        candidates.sort(key=lambda kd: kd[1].overall_score if kd[1].overall_score is not None else float("-inf"))

        excess = len(state.pool) - self.config.pool_low_watermark
        evicted = 0
        for key, _ in candidates[:excess]:
            del state.pool[key]
            state.evicted_keys.add(key)
            evicted += 1
        logger.info(f"Pool over {self.config.max_pool_size}: evicted {evicted}, {len(state.pool)} remain")

    def _cancelled(
        self,
        state: IterationState,
        channel: Optional[ProgressChannel],
        mid_iteration: bool = True,
    ) -> StopDecision:
        threshold = state.last_filtered_threshold if state.last_filtered_threshold is not None else state.threshold
        get_search_logger(__name__, state.search_id).info(
            f"cancelled in iteration {state.iteration}, "
            f"returning {len(state.last_filtered)} documents from the last filter pass"
        )
        # Between iterations the previous complete event already went out
        if mid_iteration:
            self._emit_complete(channel, state, len(state.last_filtered), StopReason.USER_CANCELLED)
        state.advance(Phase.DONE)
        return StopDecision(reason=StopReason.USER_CANCELLED, iteration=state.iteration, threshold=threshold)

    def _emit_complete(
        self,
        channel: Optional[ProgressChannel],
        state: IterationState,
        papers_found: int,
        reason: Optional[StopReason],
    ) -> None:
        self._emit(channel, IterationCompleteEvent(
            search_id=state.search_id,
            iteration=state.iteration,
            papers_found=papers_found,
            target_papers=state.target_count,
            sources_exhausted=sorted(state.exhausted_sources),
            reason=reason,
        ))

    @staticmethod
    def _emit(channel: Optional[ProgressChannel], event) -> None:
        if channel is not None:
            channel.emit(event)

    def _build_result(self, state: IterationState, stop: StopDecision) -> SearchResult:
        documents = state.last_filtered
        return SearchResult(
            search_id=state.search_id,
            query=state.query,
            documents=documents[:state.target_count],
            stop=stop,
            field=state.field,
            field_confidence=state.field_confidence,
            final_threshold=stop.threshold,
            iterations=state.iteration,
            total_candidates=len(state.pool),
            sources_exhausted=sorted(state.exhausted_sources),
            elapsed_seconds=round(state.elapsed, 2),
        )

    @staticmethod
    def _log_summary(result: SearchResult) -> None:
        logger.info(f"\n---SEARCH COMPLETE [{result.search_id}]---")
        logger.info(f"Stop reason: {result.stop.reason.value} (iteration {result.iterations})")
        logger.info(f"Documents: {len(result.documents)} at threshold {result.final_threshold:g}")
        logger.info(f"Unique candidates: {result.total_candidates}, elapsed {result.elapsed_seconds:.1f}s")
        for i, d in enumerate(result.documents[:10], 1):
            logger.debug(f"{i}. [{d.overall_score:.1f}] {d.title[:60]}")
