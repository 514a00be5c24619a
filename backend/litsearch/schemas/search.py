"""
Search Schemas

Pydantic models for the iterative search pipeline: request, tunables,
stop decisions and the final result handed to downstream consumers.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .documents import CandidateDocument


class AcademicField(str, Enum):
    """Coarse academic domain used to calibrate the quality threshold."""
    BIOMEDICAL = "biomedical"
    PHYSICAL_SCIENCES = "physical-sciences"
    COMPUTER_SCIENCE = "computer-science"
    ENGINEERING = "engineering"
    SOCIAL_SCIENCE = "social-science"
    HUMANITIES = "humanities"
    INTERDISCIPLINARY = "interdisciplinary"


class StopReason(str, Enum):
    """Verdicts of the stop-condition check. RELAXING_THRESHOLD means keep going."""
    TARGET_REACHED = "TARGET_REACHED"
    RELAXING_THRESHOLD = "RELAXING_THRESHOLD"
    MAX_ITERATIONS = "MAX_ITERATIONS"
    DIMINISHING_RETURNS = "DIMINISHING_RETURNS"
    SOURCES_EXHAUSTED = "SOURCES_EXHAUSTED"
    MIN_THRESHOLD = "MIN_THRESHOLD"
    USER_CANCELLED = "USER_CANCELLED"
    TIMEOUT = "TIMEOUT"


class StopDecision(BaseModel):
    """Why a search ended. Immutable once produced."""
    model_config = ConfigDict(frozen=True)

    reason: StopReason
    iteration: int = Field(ge=0)
    threshold: float

    @model_validator(mode="after")
    def _must_be_terminal(self) -> "StopDecision":
        if self.reason == StopReason.RELAXING_THRESHOLD:
            raise ValueError("RELAXING_THRESHOLD is not a terminal stop reason")
        return self


class FieldClassification(BaseModel):
    """Output of the field classifier."""
    field: AcademicField
    confidence: float = Field(ge=0.0, le=1.0)
    matched_keywords: List[str] = Field(default_factory=list)


class ThresholdDecision(BaseModel):
    """Next threshold proposed by the threshold service (None = cannot relax)."""
    threshold: Optional[float] = None
    reason: str


class ThresholdRecommendation(BaseModel):
    """Threshold context for a query, for transparency displays."""
    field: AcademicField
    confidence: float
    matched_keywords: List[str] = Field(default_factory=list)
    initial_threshold: float
    relaxation_ladder: List[float]
    floor: float
    explanation: str


class SearchRequest(BaseModel):
    """Caller → pipeline request."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: str = Field(min_length=1, max_length=500, description="Free-text research query")
    target_count: int = Field(default=300, ge=1, le=2000, description="Number of documents wanted")


class IterationConfig(BaseModel):
    """
    Tunables for the iteration loop.

    The growth factor and diminishing-returns ratio are calibration knobs,
    not derived values.
    """
    max_iterations: int = Field(default=4, ge=1, le=10)
    base_fetch_limit: int = Field(default=600, ge=1, le=5000, description="Per-source fetch cap on iteration 1")
    fetch_growth_factor: float = Field(default=1.5, ge=1.0, le=4.0, description="Geometric growth of the fetch cap per iteration")
    max_fetch_limit: int = Field(default=2000, ge=1, le=10000)
    min_threshold: float = Field(default=30.0, ge=0.0, le=100.0, description="Relaxation floor")
    diminishing_returns_ratio: float = Field(default=0.05, ge=0.0, le=1.0)
    source_exhaustion_ratio: float = Field(default=0.5, ge=0.0, le=1.0)
    iteration_timeout_seconds: float = Field(default=40.0, gt=0)
    search_timeout_seconds: float = Field(default=180.0, gt=0)
    max_pool_size: int = Field(default=8000, ge=1)
    pool_low_watermark: int = Field(default=6000, ge=1)

    @model_validator(mode="after")
    def _check_watermarks(self) -> "IterationConfig":
        if self.pool_low_watermark > self.max_pool_size:
            raise ValueError("pool_low_watermark must not exceed max_pool_size")
        if self.max_fetch_limit < self.base_fetch_limit:
            raise ValueError("max_fetch_limit must be at least base_fetch_limit")
        return self

    def fetch_limit_for(self, iteration: int) -> int:
        """Per-source fetch cap for a 1-based iteration number."""
        growth = self.fetch_growth_factor ** max(iteration - 1, 0)
        return min(round(self.base_fetch_limit * growth), self.max_fetch_limit)

    @classmethod
    def default(cls) -> "IterationConfig":
        """Return the default configuration"""
        return cls()


class SearchResult(BaseModel):
    """Final output handed to downstream consumers (theme extraction, audit display)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    search_id: str
    query: str
    documents: List[CandidateDocument] = Field(default_factory=list)
    stop: StopDecision
    field: AcademicField
    field_confidence: float
    final_threshold: float
    iterations: int
    total_candidates: int = Field(description="Unique documents accumulated across iterations")
    sources_exhausted: List[str] = Field(default_factory=list)
    elapsed_seconds: float
