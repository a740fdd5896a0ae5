"""Scoring strategies shared by search and project recommendations."""
from dataclasses import dataclass, field
from typing import Any, Callable, List, Protocol, Sequence, Tuple


EXACT_MATCH = 100
PREFIX_MATCH = 80
PARTIAL_MATCH = 60
NO_MATCH = 0
EMPTY_QUERY = 1  # Neutral score so an empty query browses everything


def relevance(text: str, query: str) -> int:
    """Score how well ``text`` matches an already lower-cased, trimmed query.

    Args:
        text: Field value to search in (case-insensitive)
        query: Normalized query string

    Returns:
        100 for an exact match, 80 for a prefix, 60 for a substring
        elsewhere, 0 for no match and 1 when the query is empty
    """
    if not query:
        return EMPTY_QUERY

    lowered = (text or "").lower()
    if query not in lowered:
        return NO_MATCH
    if lowered == query:
        return EXACT_MATCH
    if lowered.startswith(query):
        return PREFIX_MATCH
    return PARTIAL_MATCH


@dataclass
class Score:
    """Outcome of scoring one record."""
    value: float
    reasons: List[str] = field(default_factory=list)


class ScoringStrategy(Protocol):
    """Protocol for record scoring strategies."""

    def score(self, record: Any, query: str = "") -> Score:
        """Score a record.

        Args:
            record: Entity to score
            query: Normalized query string (ignored by query-less strategies)

        Returns:
            Score with the numeric value and any human-readable reasons
        """
        ...


class MaxWeightedField:
    """Best single weighted field match wins.

    Each field is scored independently with :func:`relevance` and scaled
    by its weight; the record's score is the maximum, never the sum.
    Missing fields score as the empty string.
    """

    def __init__(self, weights: Sequence[Tuple[str, float]]):
        self.weights = tuple(weights)

    def score(self, record: Any, query: str = "") -> Score:
        best = 0.0
        for attr, weight in self.weights:
            value = getattr(record, attr, None) or ""
            best = max(best, relevance(value, query) * weight)
        return Score(best)


@dataclass(frozen=True)
class Bonus:
    """Fixed number of points awarded when ``applies(record)`` holds."""
    points: float
    reason: str
    applies: Callable[[Any], bool]


class AdditiveBonus:
    """Base score plus every bonus whose predicate matches."""

    def __init__(self, base: float, bonuses: Sequence[Bonus]):
        self.base = base
        self.bonuses = tuple(bonuses)

    def score(self, record: Any, query: str = "") -> Score:
        total = self.base
        reasons = []
        for bonus in self.bonuses:
            if bonus.applies(record):
                total += bonus.points
                reasons.append(bonus.reason)
        return Score(total, reasons)


def rank(records: Sequence[Any], strategy: ScoringStrategy, query: str = "",
         limit: int = 0) -> List[Tuple[Any, Score]]:
    """Score records and order them by descending score.

    The sort is stable, so records with equal scores keep their input order.

    Args:
        records: Records to score
        strategy: Scoring strategy to apply
        query: Normalized query passed through to the strategy
        limit: Keep only the top ``limit`` entries (0 = keep all)

    Returns:
        List of (record, score) tuples, best first
    """
    scored = [(record, strategy.score(record, query)) for record in records]
    scored.sort(key=lambda x: x[1].value, reverse=True)
    return scored[:limit] if limit > 0 else scored
