"""
Caller-side progress tracking.

Consumes raw events (dicts off a socket, or event models) and keeps the
derived view a UI needs. Anything malformed or out of order is logged and
dropped; it never touches the derived state and never raises.
"""
from typing import Any, List, Optional, Union

from pydantic import ValidationError

from litsearch.core.exceptions import ProgressEventError
from litsearch.core.logging import get_logger
from litsearch.schemas.events import (
    IterationCompleteEvent,
    IterationProgressEvent,
    IterationStartEvent,
    SearchCompleteEvent,
    SearchErrorEvent,
    SearchEvent,
    search_event_adapter,
)
from litsearch.schemas.search import SearchResult, StopReason

logger = get_logger(__name__)


class ProgressTracker:
    """Derived progress state for one search."""

    def __init__(self, search_id: Optional[str] = None):
        self.search_id = search_id
        self.iteration = 0
        self.total_iterations: Optional[int] = None
        self.threshold: Optional[float] = None
        self.field: Optional[str] = None
        self.papers_found = 0
        self.target_papers: Optional[int] = None
        self.new_papers_this_iteration = 0
        self.yield_rate = 0.0
        self.sources_exhausted: List[str] = []
        self.stop_reason: Optional[StopReason] = None
        self.result: Optional[SearchResult] = None
        self.error: Optional[str] = None
        self.accepted: List[SearchEvent] = []
        self.rejected = 0

    @property
    def is_finished(self) -> bool:
        return self.result is not None or self.error is not None

    def handle(self, raw: Union[dict, Any]) -> Optional[SearchEvent]:
        """
        Validate and apply one event.

        Returns:
            The accepted event, or None if it was discarded
        """
        try:
            event = self._validate(raw)
        except ProgressEventError as e:
            self.rejected += 1
            logger.warning(f"Discarding progress event: {e}")
            return None

        self._apply(event)
        self.accepted.append(event)
        return event

    def _validate(self, raw: Union[dict, Any]) -> SearchEvent:
        data = raw.to_wire() if hasattr(raw, "to_wire") else raw
        event_type = data.get("type") if isinstance(data, dict) else None

        try:
            event = search_event_adapter.validate_python(data)
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ProgressEventError(event_type, errors) from e

        if self.search_id is None:
            self.search_id = event.search_id
        elif event.search_id != self.search_id:
            raise ProgressEventError(event.type, f"searchId {event.search_id} does not match {self.search_id}")

        if self.is_finished:
            raise ProgressEventError(event.type, "search already finished")

        iteration = getattr(event, "iteration", None)
        if iteration is not None:
            if self.total_iterations is not None and iteration > self.total_iterations:
                raise ProgressEventError(
                    event.type, f"iteration {iteration} exceeds totalIterations {self.total_iterations}"
                )
            if iteration < self.iteration:
                raise ProgressEventError(event.type, f"iteration {iteration} arrived after {self.iteration}")
            if isinstance(event, IterationStartEvent) and iteration == self.iteration:
                raise ProgressEventError(event.type, f"duplicate start for iteration {iteration}")
            if not isinstance(event, IterationStartEvent) and iteration != self.iteration:
                raise ProgressEventError(event.type, f"iteration {iteration} was never started")

        return event

    def _apply(self, event: SearchEvent) -> None:
        if isinstance(event, IterationStartEvent):
            self.iteration = event.iteration
            self.total_iterations = event.total_iterations
            self.threshold = event.threshold
            self.field = event.field.value
            self.papers_found = event.papers_found_so_far
            self.target_papers = event.target_papers
        elif isinstance(event, IterationProgressEvent):
            self.papers_found = event.papers_found
            self.new_papers_this_iteration = event.new_papers_this_iteration
            self.yield_rate = event.yield_rate
        elif isinstance(event, IterationCompleteEvent):
            self.papers_found = event.papers_found
            self.sources_exhausted = list(event.sources_exhausted)
            if event.reason is not None:
                self.stop_reason = event.reason
        elif isinstance(event, SearchCompleteEvent):
            self.result = event.result
            self.stop_reason = event.result.stop.reason
            self.papers_found = len(event.result.documents)
        elif isinstance(event, SearchErrorEvent):
            self.error = event.message
