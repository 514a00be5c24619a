"""
Adaptive quality thresholds.

Source metadata completeness varies systematically by field: biomedical
records are rich, humanities and social-science records are sparse. Each
field therefore starts from its own threshold and relaxes along its own
fixed ladder. This module is the only place threshold values come from.
"""
from typing import Dict, List, Optional, Tuple

from litsearch.core.logging import get_logger
from litsearch.schemas.search import (
    AcademicField,
    ThresholdDecision,
    ThresholdRecommendation,
)

from .field_classifier import FieldClassifier

logger = get_logger(__name__)

DEFAULT_FLOOR = 30.0

# Strictly decreasing rungs, first rung is the initial threshold
RELAXATION_LADDERS: Dict[AcademicField, Tuple[float, ...]] = {
    AcademicField.BIOMEDICAL: (60.0, 50.0, 40.0, 30.0),
    AcademicField.PHYSICAL_SCIENCES: (55.0, 45.0, 40.0, 35.0, 30.0),
    AcademicField.COMPUTER_SCIENCE: (55.0, 45.0, 40.0, 35.0, 30.0),
    AcademicField.ENGINEERING: (55.0, 45.0, 40.0, 35.0, 30.0),
    AcademicField.INTERDISCIPLINARY: (50.0, 40.0, 35.0, 30.0),
    AcademicField.SOCIAL_SCIENCE: (45.0, 40.0, 35.0, 30.0),
    AcademicField.HUMANITIES: (40.0, 35.0, 30.0),
}

# When fewer than this share of the target qualifies, skip one extra rung
FAR_BELOW_TARGET_RATIO = 0.25

CANNOT_RELAX = "cannot relax further: threshold is at the configured floor"


class AdaptiveThresholdService:
    """Owns field-specific initial thresholds and the relaxation policy."""

    def __init__(
        self,
        floor: float = DEFAULT_FLOOR,
        ladders: Optional[Dict[AcademicField, Tuple[float, ...]]] = None,
        classifier: Optional[FieldClassifier] = None,
    ):
        self.floor = floor
        self.classifier = classifier or FieldClassifier()
        self._ladders: Dict[AcademicField, List[float]] = {}
        for field, rungs in (ladders or RELAXATION_LADDERS).items():
            self._ladders[field] = self._clip_to_floor(rungs)

    def _clip_to_floor(self, rungs: Tuple[float, ...]) -> List[float]:
        clipped = sorted({max(r, self.floor) for r in rungs}, reverse=True)
        if clipped[-1] != self.floor:
            clipped.append(self.floor)
        return clipped

    def ladder(self, field: AcademicField) -> List[float]:
        """Full relaxation sequence for a field, initial threshold first."""
        return list(self._ladders.get(field, self._ladders[AcademicField.INTERDISCIPLINARY]))

    def initial_threshold(self, field: AcademicField) -> float:
        return self.ladder(field)[0]

    def is_at_floor(self, threshold: float) -> bool:
        return threshold <= self.floor

    def next_threshold(
        self,
        current: float,
        field: AcademicField,
        iteration: int,
        papers_found: int,
        target: int,
    ) -> ThresholdDecision:
        """
        Propose the threshold for the next iteration.

        Returns the next rung strictly below `current`. A pool far below
        target skips one extra rung. Never goes below the floor; at the
        floor the decision carries threshold=None.
        """
        if self.is_at_floor(current):
            return ThresholdDecision(threshold=None, reason=CANNOT_RELAX)

        lower = [r for r in self.ladder(field) if r < current]
        if not lower:
            return ThresholdDecision(threshold=None, reason=CANNOT_RELAX)

        step = 0
        found_ratio = papers_found / target if target > 0 else 1.0
        if found_ratio < FAR_BELOW_TARGET_RATIO and len(lower) > 1:
            step = 1

        proposed = lower[step]
        if step:
            reason = (
                f"relaxed {current:g} -> {proposed:g} (skipped a rung: "
                f"{papers_found}/{target} found after iteration {iteration})"
            )
        else:
            reason = f"relaxed {current:g} -> {proposed:g} after iteration {iteration}"

        logger.debug(f"Threshold decision for {field.value}: {reason}")
        return ThresholdDecision(threshold=proposed, reason=reason)

    def recommendation(self, query: str) -> ThresholdRecommendation:
        """Threshold context for a query (field, ladder, explanation)."""
        detection = self.classifier.classify(query)
        ladder = self.ladder(detection.field)
        if detection.field == AcademicField.INTERDISCIPLINARY:
            explanation = (
                f"No field detected with enough confidence ({detection.confidence:.2f}); "
                f"using the interdisciplinary profile starting at {ladder[0]:g}."
            )
        else:
            explanation = (
                f"Detected {detection.field.value} (confidence {detection.confidence:.2f}, "
                f"keywords: {', '.join(detection.matched_keywords)}); "
                f"starting at {ladder[0]:g} and relaxing to no lower than {self.floor:g}."
            )
        return ThresholdRecommendation(
            field=detection.field,
            confidence=detection.confidence,
            matched_keywords=detection.matched_keywords,
            initial_threshold=ladder[0],
            relaxation_ladder=ladder,
            floor=self.floor,
            explanation=explanation,
        )
