"""
Academic field detection.

Matches query tokens and phrases against per-field keyword tables. Each
keyword carries a specificity weight, so one decisive term ("quantum",
"immunotherapy") is enough on its own while generic terms ("study",
"analysis") never are.
"""
import math
import re
from typing import Dict, List, Set

from litsearch.core.logging import get_logger
from litsearch.schemas.search import AcademicField, FieldClassification

logger = get_logger(__name__)

STRONG = 1.0
MODERATE = 0.6
WEAK = 0.3

# Below this the query is treated as interdisciplinary. Lowered from 0.6
# so a single strong keyword decides the field.
MIN_CONFIDENCE = 0.35

FIELD_KEYWORDS: Dict[AcademicField, Dict[str, float]] = {
    AcademicField.BIOMEDICAL: {
        "cancer": STRONG, "tumor": STRONG, "tumour": STRONG, "oncology": STRONG,
        "immunotherapy": STRONG, "clinical trial": STRONG, "randomized controlled": STRONG,
        "disease": MODERATE, "patient": MODERATE, "therapy": MODERATE, "treatment": MODERATE,
        "clinical": MODERATE, "trial": WEAK, "drug": MODERATE, "gene": STRONG, "genomic": STRONG,
        "protein": STRONG, "cell": MODERATE, "diabetes": STRONG, "cardiovascular": STRONG,
        "vaccine": STRONG, "infection": STRONG, "antibiotic": STRONG, "alzheimer": STRONG,
        "medicine": MODERATE, "medical": MODERATE, "health": WEAK, "mortality": MODERATE,
        "biomarker": STRONG, "mrna": STRONG, "crispr": STRONG, "mouse": MODERATE,
        "epidemiology": STRONG, "pharmacology": STRONG, "surgery": STRONG, "neuron": STRONG,
    },
    AcademicField.PHYSICAL_SCIENCES: {
        "quantum": STRONG, "physics": STRONG, "particle": MODERATE, "astrophysics": STRONG,
        "galaxy": STRONG, "cosmology": STRONG, "chemistry": STRONG, "molecule": MODERATE,
        "catalyst": STRONG, "polymer": STRONG, "superconductor": STRONG, "photon": STRONG,
        "laser": MODERATE, "thermodynamics": STRONG, "crystal": MODERATE, "spectroscopy": STRONG,
        "geology": STRONG, "climate": MODERATE, "atmospheric": MODERATE, "material": WEAK,
    },
    AcademicField.COMPUTER_SCIENCE: {
        "machine learning": STRONG, "deep learning": STRONG, "neural network": STRONG,
        "algorithm": MODERATE, "software": MODERATE, "computer": MODERATE, "computing": MODERATE,
        "artificial intelligence": STRONG, "language model": STRONG, "transformer": MODERATE,
        "database": MODERATE, "cybersecurity": STRONG, "encryption": STRONG, "compiler": STRONG,
        "distributed system": STRONG, "reinforcement learning": STRONG, "computer vision": STRONG,
        "data mining": STRONG, "blockchain": STRONG, "programming": MODERATE,
    },
    AcademicField.ENGINEERING: {
        "engineering": STRONG, "robotics": STRONG, "sensor": MODERATE, "circuit": STRONG,
        "turbine": STRONG, "aerospace": STRONG, "structural": MODERATE, "manufacturing": STRONG,
        "battery": MODERATE, "renewable energy": STRONG, "control system": STRONG,
        "civil": MODERATE, "mechanical": MODERATE, "semiconductor": STRONG, "vehicle": MODERATE,
    },
    AcademicField.SOCIAL_SCIENCE: {
        "psychology": STRONG, "sociology": STRONG, "mental health": STRONG, "depression": STRONG,
        "anxiety": MODERATE, "education": STRONG, "economics": STRONG, "economic": MODERATE,
        "policy": MODERATE, "political": STRONG, "survey": MODERATE, "behavior": MODERATE,
        "behaviour": MODERATE, "social": MODERATE, "community": WEAK, "inequality": STRONG,
        "migration": MODERATE, "gender": MODERATE, "wellbeing": MODERATE, "attitude": MODERATE,
        "organizational": MODERATE, "marketing": STRONG, "qualitative": MODERATE,
    },
    AcademicField.HUMANITIES: {
        "philosophy": STRONG, "history": MODERATE, "historical": MODERATE, "literature": MODERATE,
        "literary": STRONG, "poetry": STRONG, "music": STRONG, "art": WEAK, "religion": STRONG,
        "theology": STRONG, "linguistics": STRONG, "ethics": MODERATE, "culture": MODERATE,
        "cultural": MODERATE, "medieval": STRONG, "renaissance": STRONG, "novel": WEAK,
        "archaeology": STRONG, "film": MODERATE, "aesthetics": STRONG,
    },
}

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def _singular(token: str) -> str:
    """Fold simple English plurals ("trials" -> "trial")."""
    if len(token) > 3 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def _normalize(text: str) -> List[str]:
    return [_singular(t) for t in _TOKEN_RE.findall(text.lower())]


class FieldClassifier:
    """Keyword-based academic field detection."""

    def __init__(
        self,
        keywords: Dict[AcademicField, Dict[str, float]] = None,
        min_confidence: float = MIN_CONFIDENCE,
    ):
        self.min_confidence = min_confidence
        # Normalize keywords once so phrases and plurals compare like queries do
        self._keywords: Dict[AcademicField, Dict[str, float]] = {}
        for field, table in (keywords or FIELD_KEYWORDS).items():
            self._keywords[field] = {" ".join(_normalize(k)): w for k, w in table.items()}

    def classify(self, query: str) -> FieldClassification:
        """
        Estimate the academic field of a query.

        Confidence combines how much specific evidence the best field has
        (saturating, so one strong keyword scores ~0.63) with how dominant
        that field is among all matched fields.
        """
        tokens = _normalize(query or "")
        token_set: Set[str] = set(tokens)
        padded = f" {' '.join(tokens)} "

        weights: Dict[AcademicField, float] = {}
        matches: Dict[AcademicField, List[str]] = {}
        for field, table in self._keywords.items():
            for keyword, weight in table.items():
                hit = f" {keyword} " in padded if " " in keyword else keyword in token_set
                if hit:
                    weights[field] = weights.get(field, 0.0) + weight
                    matches.setdefault(field, []).append(keyword)

        if not weights:
            return FieldClassification(field=AcademicField.INTERDISCIPLINARY, confidence=0.0)

        best_field = max(weights, key=lambda f: weights[f])
        best_weight = weights[best_field]
        dominance = best_weight / sum(weights.values())
        confidence = round((1.0 - math.exp(-best_weight)) * dominance, 4)

        if confidence < self.min_confidence:
            logger.debug(
                f"Field guess {best_field.value} below confidence floor "
                f"({confidence:.2f} < {self.min_confidence}), using interdisciplinary"
            )
            return FieldClassification(
                field=AcademicField.INTERDISCIPLINARY,
                confidence=confidence,
                matched_keywords=sorted({k for kws in matches.values() for k in kws}),
            )

        return FieldClassification(
            field=best_field,
            confidence=confidence,
            matched_keywords=matches[best_field],
        )
