"""Tests for progress event schemas."""
import pytest
from pydantic import ValidationError


def _start(**overrides):
    from litsearch.schemas.events import IterationStartEvent

    data = dict(
        search_id="s1", iteration=1, total_iterations=4, fetch_limit=600,
        threshold=60.0, field="biomedical", papers_found_so_far=0, target_papers=300,
    )
    data.update(overrides)
    return IterationStartEvent(**data)


class TestWireFormat:
    """Test camelCase serialization."""

    def test_start_event_wire_keys(self):
        """Fields go out in camelCase with the type tag."""
        wire = _start().to_wire()

        assert wire["type"] == "iteration_start"
        assert wire["searchId"] == "s1"
        assert wire["totalIterations"] == 4
        assert wire["papersFoundSoFar"] == 0
        assert wire["field"] == "biomedical"
        assert isinstance(wire["timestamp"], int)

    def test_complete_event_omits_missing_reason(self):
        """Non-terminal iterations carry no reason key."""
        from litsearch.schemas.events import IterationCompleteEvent

        event = IterationCompleteEvent(search_id="s1", iteration=1, papers_found=5, target_papers=300)
        assert "reason" not in event.to_wire()

    def test_complete_event_keeps_reason(self):
        """The terminal iteration carries its stop reason."""
        from litsearch.schemas.events import IterationCompleteEvent
        from litsearch.schemas.search import StopReason

        event = IterationCompleteEvent(
            search_id="s1", iteration=2, papers_found=5, target_papers=300,
            reason=StopReason.TARGET_REACHED, sources_exhausted=["CrossRef"],
        )
        wire = event.to_wire()
        assert wire["reason"] == "TARGET_REACHED"
        assert wire["sourcesExhausted"] == ["CrossRef"]

    def test_wire_round_trips_through_adapter(self):
        """The discriminated union picks the right model from the wire."""
        from litsearch.schemas.events import IterationStartEvent, search_event_adapter

        parsed = search_event_adapter.validate_python(_start(iteration=2).to_wire())
        assert isinstance(parsed, IterationStartEvent)
        assert parsed.iteration == 2


class TestValidation:
    """Test event invariants."""

    def test_iteration_cannot_exceed_total(self):
        """iteration > totalIterations is rejected."""
        with pytest.raises(ValidationError):
            _start(iteration=5, total_iterations=4)

    def test_counts_are_non_negative(self):
        """Negative counts are rejected."""
        from litsearch.schemas.events import IterationProgressEvent

        with pytest.raises(ValidationError):
            IterationProgressEvent(
                search_id="s1", iteration=1, papers_found=-1,
                new_papers_this_iteration=0, yield_rate=0.0,
            )

    def test_threshold_bounded(self):
        """Thresholds live on the 0-100 scale."""
        with pytest.raises(ValidationError):
            _start(threshold=120.0)

    def test_unknown_type_rejected(self):
        """The adapter refuses unknown event types."""
        from litsearch.schemas.events import search_event_adapter

        with pytest.raises(ValidationError):
            search_event_adapter.validate_python({"type": "iteration_paused", "searchId": "s1"})

    def test_terminal_types(self):
        """Only completion and error end a stream."""
        from litsearch.schemas.events import TERMINAL_EVENT_TYPES

        assert TERMINAL_EVENT_TYPES == {"search_complete", "search_error"}


class TestStopDecision:
    """Test the StopDecision model."""

    def test_relaxing_is_not_terminal(self):
        """RELAXING_THRESHOLD cannot be a final decision."""
        from litsearch.schemas.search import StopDecision, StopReason

        with pytest.raises(ValidationError):
            StopDecision(reason=StopReason.RELAXING_THRESHOLD, iteration=1, threshold=50.0)

    def test_frozen(self):
        """Decisions are immutable once made."""
        from litsearch.schemas.search import StopDecision, StopReason

        decision = StopDecision(reason=StopReason.TIMEOUT, iteration=2, threshold=50.0)
        with pytest.raises(ValidationError):
            decision.reason = StopReason.MAX_ITERATIONS


class TestIterationConfig:
    """Test loop tunables."""

    def test_fetch_limit_growth(self):
        """Fetch caps grow by 1.5x and stop at the maximum."""
        from litsearch.schemas.search import IterationConfig

        config = IterationConfig()
        assert [config.fetch_limit_for(i) for i in range(1, 6)] == [600, 900, 1350, 2000, 2000]

    def test_watermark_validation(self):
        """The eviction target must sit below the pool cap."""
        from litsearch.schemas.search import IterationConfig

        with pytest.raises(ValidationError):
            IterationConfig(max_pool_size=100, pool_low_watermark=200)

    def test_request_accepts_camel_case(self):
        """Requests arrive from clients in camelCase."""
        from litsearch.schemas.search import SearchRequest

        request = SearchRequest.model_validate({"query": "rapamycin", "targetCount": 50})
        assert request.target_count == 50

    def test_request_rejects_empty_query(self):
        """An empty query is a validation error."""
        from litsearch.schemas.search import SearchRequest

        with pytest.raises(ValidationError):
            SearchRequest(query="")
