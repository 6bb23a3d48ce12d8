from typing import Dict

from services.decision.categories import CATEGORY_KEYS, check_category_keys

# Upper bounds of the low / medium score bands on the 1-10 scale
LOW_BAND_MAX = 4
MEDIUM_BAND_MAX = 7


def _scores_of(property_or_scores) -> Dict[str, float]:
    scores = getattr(property_or_scores, 'scores', property_or_scores)
    check_category_keys(scores)
    return scores


class ScoreCalculator:
    """Weighted-additive scoring of a property against normalized weights"""

    def weighted_score(self, property_or_scores, normalized_weights: Dict[str, float]) -> float:
        """Σ normalized weight × category score, on the 1-10 scale.

        Accepts a PropertyRecord or a bare scores mapping. Raises
        CategoryIntegrityError if the scores do not cover the registry.
        """
        scores = _scores_of(property_or_scores)
        return sum(
            normalized_weights.get(key, 0.0) * float(scores[key])
            for key in CATEGORY_KEYS
        )

    def contributions(self, property_or_scores, normalized_weights: Dict[str, float]) -> Dict[str, float]:
        """Per-category weighted contribution to the aggregate score"""
        scores = _scores_of(property_or_scores)
        return {
            key: normalized_weights.get(key, 0.0) * float(scores[key])
            for key in CATEGORY_KEYS
        }

    def structural_score(self, property_or_scores) -> float:
        """Unweighted mean of the category scores"""
        scores = _scores_of(property_or_scores)
        return sum(float(scores[key]) for key in CATEGORY_KEYS) / len(CATEGORY_KEYS)

    def score_variance(self, property_or_scores) -> float:
        """Population variance of the raw category scores"""
        scores = _scores_of(property_or_scores)
        values = [float(scores[key]) for key in CATEGORY_KEYS]
        mean = sum(values) / len(values)
        return sum((value - mean) ** 2 for value in values) / len(values)

    @staticmethod
    def score_band(score: float) -> str:
        if score <= LOW_BAND_MAX:
            return 'low'
        if score <= MEDIUM_BAND_MAX:
            return 'medium'
        return 'high'
