"""
Adaptive Iterative Search

This package retrieves and ranks literature over several iterations:
1. Classifying the query's academic field to pick a threshold profile
2. Fetching from all sources in parallel with a growing fetch cap
3. Deduplicating into an accumulating pool
4. Scoring every document (BM25 + embeddings + topical fit)
5. Filtering by a threshold that relaxes until a stop condition fires

Package Structure:
- orchestrator.py: The iteration loop and stop conditions
- state.py: Per-search state and phase machine
- field_classifier.py: Query field detection
- thresholds.py: Initial thresholds and relaxation ladders
- scoring.py: Hybrid scorer (lexical.py, theme_fit.py, quality.py)
- dedup.py: Cross-source deduplication
- channel.py: Progress channel and cancellation token
- tracker.py: Caller-side event validation and derived state
- registry.py: In-flight searches by ID
"""

# Main entry point
from .orchestrator import IterationOrchestrator, evaluate_stop

# Components
from .field_classifier import FieldClassifier
from .thresholds import AdaptiveThresholdService
from .scoring import HybridScorer, DocumentScores
from .dedup import dedupe, document_key, merge_into
from .channel import CancellationToken, ProgressChannel
from .tracker import ProgressTracker
from .registry import SearchRegistry
from .state import IterationState, Phase

__all__ = [
    "IterationOrchestrator",
    "evaluate_stop",
    "FieldClassifier",
    "AdaptiveThresholdService",
    "HybridScorer",
    "DocumentScores",
    "dedupe",
    "document_key",
    "merge_into",
    "CancellationToken",
    "ProgressChannel",
    "ProgressTracker",
    "SearchRegistry",
    "IterationState",
    "Phase",
]
