"""
Confidence and score helpers.
Methods to combine field confidences and classify match scores.
"""

from typing import List, Optional, Tuple
from statistics import mean

from invoice_matcher.config import HIGH_CONFIDENCE_SCORE, MEDIUM_CONFIDENCE_SCORE


# Lower bound of each level, highest first
CONFIDENCE_LEVELS = (
    (0.95, "VERY_HIGH"),
    (0.85, "HIGH"),
    (0.70, "ACCEPTABLE"),
    (0.50, "LOW"),
)

_COMBINERS = {
    "mean": mean,
    "min": min,
    "max": max,
}


def combine_confidence_scores(
    scores: List[float],
    weights: Optional[List[float]] = None,
    method: str = "mean"
) -> float:
    """
    Reduce per-field confidences (0-1) to one value.

    method is "mean", "min", "max" or "weighted_mean". Inputs are clamped to
    0-1 first; an empty list gives 0.0.
    """
    if not scores:
        return 0.0

    clamped = [min(1.0, max(0.0, s)) for s in scores]

    if method == "weighted_mean":
        weights = weights or [1.0] * len(clamped)
        if len(weights) != len(clamped):
            raise ValueError(f"Weights length ({len(weights)}) must match scores length ({len(clamped)})")
        total = sum(weights)
        return sum(s * w for s, w in zip(clamped, weights)) / total

    combiner = _COMBINERS.get(method)
    if combiner is None:
        raise ValueError(f"Unknown confidence combination method: {method}")
    return combiner(clamped)


def score_bucket(match_score: int) -> str:
    """
    Bucket a 0-100 match score.

    high: > 80, medium: 51-80, low: <= 50. The buckets partition the range.
    """
    if match_score > HIGH_CONFIDENCE_SCORE:
        return "high"
    elif match_score > MEDIUM_CONFIDENCE_SCORE:
        return "medium"
    return "low"


def confidence_level_name(confidence: float) -> str:
    for lower_bound, name in CONFIDENCE_LEVELS:
        if confidence >= lower_bound:
            return name
    return "VERY_LOW"


def interpret_match_score(match_score: int) -> Tuple[str, str]:
    """
    Get human-readable interpretation of a match score.

    Returns:
        (bucket, description)
    """
    descriptions = {
        "high": "High confidence match",
        "medium": "Partial match, manual review recommended",
        "low": "Low confidence, documents are unlikely to be related",
    }

    bucket = score_bucket(match_score)
    return bucket, descriptions[bucket]
