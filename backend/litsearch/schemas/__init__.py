"""
Schemas Module

Contains all Pydantic models (DTOs) for:
- Candidate documents returned by source connectors
- Search requests, tunables, stop decisions and results
- Streaming progress events
"""
from .documents import CandidateDocument
from .search import (
    AcademicField,
    StopReason,
    StopDecision,
    FieldClassification,
    ThresholdDecision,
    ThresholdRecommendation,
    SearchRequest,
    IterationConfig,
    SearchResult,
)
from .events import (
    IterationStartEvent,
    IterationProgressEvent,
    IterationCompleteEvent,
    SearchCompleteEvent,
    SearchErrorEvent,
    SearchEvent,
    search_event_adapter,
    TERMINAL_EVENT_TYPES,
    now_ms,
)

__all__ = [
    "CandidateDocument",
    "AcademicField",
    "StopReason",
    "StopDecision",
    "FieldClassification",
    "ThresholdDecision",
    "ThresholdRecommendation",
    "SearchRequest",
    "IterationConfig",
    "SearchResult",
    "IterationStartEvent",
    "IterationProgressEvent",
    "IterationCompleteEvent",
    "SearchCompleteEvent",
    "SearchErrorEvent",
    "SearchEvent",
    "search_event_adapter",
    "TERMINAL_EVENT_TYPES",
    "now_ms",
]
