"""
Streaming Event Schemas

Pydantic models for the progress events emitted while an iterative search
runs. Field names are snake_case in Python and camelCase on the wire.
"""
import time
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel

from .search import AcademicField, SearchResult, StopReason


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class _SearchEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    search_id: str = Field(min_length=1)
    timestamp: int = Field(default_factory=now_ms, ge=0)

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class IterationStartEvent(_SearchEvent):
    """Emitted before an iteration fetches anything."""
    type: Literal["iteration_start"] = "iteration_start"
    iteration: int = Field(ge=1)
    total_iterations: int = Field(ge=1)
    fetch_limit: int = Field(ge=0)
    threshold: float = Field(ge=0, le=100)
    field: AcademicField
    papers_found_so_far: int = Field(ge=0, description="Re-filter of the accumulated pool at this threshold")
    target_papers: int = Field(ge=1)

    @model_validator(mode="after")
    def _iteration_in_range(self) -> "IterationStartEvent":
        if self.iteration > self.total_iterations:
            raise ValueError(f"iteration {self.iteration} exceeds totalIterations {self.total_iterations}")
        return self


class IterationProgressEvent(_SearchEvent):
    """Running qualifying count after fetch, merge and scoring."""
    type: Literal["iteration_progress"] = "iteration_progress"
    iteration: int = Field(ge=1)
    papers_found: int = Field(ge=0)
    new_papers_this_iteration: int = Field(ge=0)
    yield_rate: float = Field(ge=0)


class IterationCompleteEvent(_SearchEvent):
    """End of an iteration. `reason` is only set on the terminal iteration."""
    type: Literal["iteration_complete"] = "iteration_complete"
    iteration: int = Field(ge=1)
    papers_found: int = Field(ge=0)
    target_papers: int = Field(ge=1)
    sources_exhausted: List[str] = Field(default_factory=list)
    reason: Optional[StopReason] = None

    def to_wire(self) -> Dict[str, Any]:
        data = super().to_wire()
        if data.get("reason") is None:
            data.pop("reason", None)
        return data


class SearchCompleteEvent(_SearchEvent):
    """Terminal event carrying the final result."""
    type: Literal["search_complete"] = "search_complete"
    result: SearchResult


class SearchErrorEvent(_SearchEvent):
    """Terminal event when the search could not finish."""
    type: Literal["search_error"] = "search_error"
    message: str


SearchEvent = Annotated[
    Union[
        IterationStartEvent,
        IterationProgressEvent,
        IterationCompleteEvent,
        SearchCompleteEvent,
        SearchErrorEvent,
    ],
    Field(discriminator="type"),
]

search_event_adapter: TypeAdapter = TypeAdapter(SearchEvent)

TERMINAL_EVENT_TYPES = frozenset({"search_complete", "search_error"})
