"""
Topical-fit scoring.

Measures how well a document fits the query's theme and how usable it is
for later theme extraction, separately from raw semantic similarity:

- Theme coverage (50%): share of query terms present, title hits weigh more
- Thematic signal (50%): debate markers, clear claims and multiple
  perspectives, each saturating
"""
import re
from typing import List, Pattern

from litsearch.schemas.documents import CandidateDocument

from .lexical import query_terms, tokenize

COVERAGE_WEIGHT = 0.5
SIGNAL_WEIGHT = 0.5

SIGNAL_WEIGHTS = {
    "controversy": 0.40,
    "statement": 0.30,
    "perspective": 0.30,
}

# Matches needed to reach the maximum for each signal
SATURATION = {
    "controversy": 5,
    "statement": 8,
    "perspective": 6,
}

TITLE_HIT_WEIGHT = 1.0
ABSTRACT_HIT_WEIGHT = 0.7

CONTROVERSY_PATTERNS: List[Pattern] = [re.compile(p, re.IGNORECASE) for p in (
    r"\bhowever\b",
    r"\bnevertheless\b",
    r"\bin contrast\b",
    r"\bon the other hand\b",
    r"\bconversely\b",
    r"\bdebate[sd]?\b",
    r"\bcontrovers(?:y|ial)\b",
    r"\bdisagree(?:ment|s|d)?\b",
    r"\bcontest(?:ed|ing)?\b",
    r"\bchalleng(?:e[sd]?|ing)\b",
    r"\bcontradict(?:s|ed|ory)?\b",
    r"\bdispute[sd]?\b",
    r"\bconflicting evidence\b",
    r"\bmixed results\b",
    r"\binconsistent findings\b",
    r"\bcompeting (?:theories|hypotheses|models)\b",
)]

STATEMENT_PATTERNS: List[Pattern] = [re.compile(p, re.IGNORECASE) for p in (
    r"\bwe (?:argue|propose|conclude|suggest|demonstrate|show|find|hypothesi[sz]e) that\b",
    r"\bevidence suggests\b",
    r"\bfindings (?:indicate|suggest|show)\b",
    r"\bresults (?:show|indicate|suggest|demonstrate)\b",
    r"\bdata reveal[s]?\b",
    r"\bsignificantly\b",
    r"\bassociated with\b",
    r"\bleads? to\b",
    r"\bshould\b",
    r"\bmust\b",
    r"\bimplications?\b",
)]

PERSPECTIVE_PATTERNS: List[Pattern] = [re.compile(p, re.IGNORECASE) for p in (
    r"\bperspectives?\b",
    r"\bviewpoints?\b",
    r"\bstakeholders?\b",
    r"\bparticipants?\b",
    r"\bcompar(?:e[sd]?|ing|ison)\b",
    r"\bacross\b",
    r"\bwhereas\b",
    r"\bwhile others\b",
    r"\bsome (?:studies|researchers|authors)\b",
    r"\bboth\b",
)]


def _pattern_score(text: str, patterns: List[Pattern], saturation: int) -> float:
    matches = sum(1 for p in patterns if p.search(text))
    return min(matches / saturation, 1.0)


def theme_coverage(document: CandidateDocument, terms: List[str]) -> float:
    """Weighted share of query terms found in the document."""
    if not terms:
        return 0.0
    title_terms = set(tokenize(document.title))
    abstract_terms = set(tokenize(document.abstract))
    total = 0.0
    for term in terms:
        if term in title_terms:
            total += TITLE_HIT_WEIGHT
        elif term in abstract_terms:
            total += ABSTRACT_HIT_WEIGHT
    return total / len(terms)


def thematic_signal(document: CandidateDocument) -> float:
    text = document.text
    controversy = _pattern_score(text, CONTROVERSY_PATTERNS, SATURATION["controversy"])
    statement = _pattern_score(text, STATEMENT_PATTERNS, SATURATION["statement"])
    perspective = _pattern_score(text, PERSPECTIVE_PATTERNS, SATURATION["perspective"])
    return (
        SIGNAL_WEIGHTS["controversy"] * controversy
        + SIGNAL_WEIGHTS["statement"] * statement
        + SIGNAL_WEIGHTS["perspective"] * perspective
    )


def topical_fit(document: CandidateDocument, query: str) -> float:
    """Topical-fit score in [0, 1]."""
    coverage = theme_coverage(document, query_terms(query))
    return min(COVERAGE_WEIGHT * coverage + SIGNAL_WEIGHT * thematic_signal(document), 1.0)
