import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config import Config
from services.decision.categories import CATEGORY_KEYS, category_label
from services.decision.score_calculator import ScoreCalculator
from services.decision.weight_manager import WeightManager

logger = logging.getLogger(__name__)

TOP_FACTOR_COUNT = 3


@dataclass
class RankedProperty:
    rank: int
    property: Any
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rank': self.rank,
            'id': self.property.id,
            'address': self.property.address,
            'weighted_score': round(self.score, 2),
        }


@dataclass
class FactorDelta:
    key: str
    weighted_delta: float

    @property
    def label(self) -> str:
        return category_label(self.key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'label': self.label,
            'weighted_delta': round(self.weighted_delta, 2),
        }


@dataclass
class FlipProjection:
    """What the runner-up needs in the top-weighted category to overtake the winner"""
    category: str
    weight: float
    current_score: float
    minimum_increase: float
    reachable_increase: float
    required_score: float
    possible: bool
    shortfall: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category,
            'label': category_label(self.category),
            'weight': self.weight,
            'current_score': self.current_score,
            'minimum_increase': self.minimum_increase,
            'reachable_increase': self.reachable_increase,
            'required_score': self.required_score,
            'possible': self.possible,
            'shortfall': self.shortfall,
        }


@dataclass
class Insights:
    """Comparative analytics for one (properties, weights) pair.

    When ``available`` is False there are fewer than two properties and the
    winner-dependent fields are None rather than zero.
    """
    available: bool
    ranking: List[RankedProperty] = field(default_factory=list)
    winner: Optional[RankedProperty] = None
    runner_up: Optional[RankedProperty] = None
    margin: Optional[float] = None
    category_deltas: List[FactorDelta] = field(default_factory=list)
    top_factors: List[FactorDelta] = field(default_factory=list)
    flip_projection: Optional[FlipProjection] = None
    most_balanced: Any = None
    largest_gap_category: Optional[str] = None
    largest_gap_spread: Optional[float] = None
    structural_winner: Any = None
    emotional_winner: Any = None
    mismatch: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'available': self.available,
            'ranking': [r.to_dict() for r in self.ranking],
            'winner': self.winner.to_dict() if self.winner else None,
            'runner_up': self.runner_up.to_dict() if self.runner_up else None,
            'margin': self.margin,
            'category_deltas': [d.to_dict() for d in self.category_deltas],
            'top_factors': [d.to_dict() for d in self.top_factors],
            'flip_projection': self.flip_projection.to_dict() if self.flip_projection else None,
            'most_balanced': self.most_balanced.id if self.most_balanced else None,
            'largest_gap_category': self.largest_gap_category,
            'largest_gap_label': category_label(self.largest_gap_category) if self.largest_gap_category else None,
            'largest_gap_spread': self.largest_gap_spread,
            'structural_winner': self.structural_winner.id if self.structural_winner else None,
            'emotional_winner': self.emotional_winner.id if self.emotional_winner else None,
            'mismatch': self.mismatch,
        }


class InsightAnalyzer:
    """Ranks properties and derives winner, margin, contributions and diagnostics"""

    def __init__(self, score_calculator: Optional[ScoreCalculator] = None,
                 weight_manager: Optional[WeightManager] = None):
        self.score_calculator = score_calculator or ScoreCalculator()
        self.weight_manager = weight_manager or WeightManager()

    def rank(self, properties: List[Any], normalized_weights: Dict[str, float]) -> List[RankedProperty]:
        """Descending by weighted score; equal scores keep collection order"""
        scored = [
            (p, self.score_calculator.weighted_score(p, normalized_weights))
            for p in properties
        ]
        ordered = sorted(scored, key=lambda item: item[1], reverse=True)
        return [RankedProperty(rank=i, property=p, score=s) for i, (p, s) in enumerate(ordered)]

    def analyze(self, properties: List[Any], normalized_weights: Dict[str, float]) -> Insights:
        properties = list(properties)
        ranking = self.rank(properties, normalized_weights)

        insights = Insights(available=len(ranking) >= 2, ranking=ranking)

        if properties:
            insights.most_balanced = self.most_balanced(properties)
            insights.largest_gap_category, insights.largest_gap_spread = self.largest_gap(properties)
            insights.structural_winner = self._first_max(properties, lambda p: p.structural_score)
            insights.emotional_winner = self._first_max(properties, lambda p: p.emotional_pull)
            insights.mismatch = insights.structural_winner.id != insights.emotional_winner.id

        if not insights.available:
            logger.debug(f"Winner insights unavailable for {len(ranking)} properties")
            return insights

        winner, runner_up = ranking[0], ranking[1]
        insights.winner = winner
        insights.runner_up = runner_up
        insights.margin = round(winner.score - runner_up.score, 2)
        insights.category_deltas = self.category_deltas(winner.property, runner_up.property, normalized_weights)
        insights.top_factors = self.top_factors(insights.category_deltas)
        insights.flip_projection = self.flip_projection(runner_up.property, insights.margin, normalized_weights)

        logger.debug(f"Winner {winner.property.id} leads {runner_up.property.id} by {insights.margin}")
        return insights

    def category_deltas(self, winner, runner_up, normalized_weights: Dict[str, float]) -> List[FactorDelta]:
        """Weighted score difference per category; these sum to the unrounded margin"""
        return [
            FactorDelta(
                key=key,
                weighted_delta=normalized_weights.get(key, 0.0)
                * (float(winner.scores[key]) - float(runner_up.scores[key]))
            )
            for key in CATEGORY_KEYS
        ]

    def top_factors(self, deltas: List[FactorDelta]) -> List[FactorDelta]:
        positive = [d for d in deltas if d.weighted_delta > 0]
        positive.sort(key=lambda d: d.weighted_delta, reverse=True)
        return positive[:TOP_FACTOR_COUNT]

    def flip_projection(self, runner_up, margin: float, normalized_weights: Dict[str, float]) -> Optional[FlipProjection]:
        top_key = self.weight_manager.top_category(normalized_weights)
        weight = normalized_weights.get(top_key, 0.0)
        if weight <= 0:
            return None

        current = float(runner_up.scores[top_key])
        minimum_increase = margin / weight + Config.FLIP_EPSILON
        reachable_increase = Config.SCORE_SCALE_MAX - current
        possible = minimum_increase <= reachable_increase

        return FlipProjection(
            category=top_key,
            weight=weight,
            current_score=current,
            minimum_increase=round(minimum_increase, 2),
            reachable_increase=round(reachable_increase, 2),
            required_score=round(current + minimum_increase, 2),
            possible=possible,
            shortfall=None if possible else round(minimum_increase - reachable_increase, 2),
        )

    def most_balanced(self, properties: List[Any]):
        """Property with the most uniform raw scores (lowest variance)"""
        best = None
        best_variance = None
        for p in properties:
            variance = self.score_calculator.score_variance(p)
            if best is None or variance < best_variance:
                best, best_variance = p, variance
        return best

    def largest_gap(self, properties: List[Any]):
        """Category with the widest raw score spread across properties"""
        best_key = CATEGORY_KEYS[0]
        best_spread = 0.0
        for key in CATEGORY_KEYS:
            values = [float(p.scores[key]) for p in properties]
            spread = max(values) - min(values)
            if spread > best_spread:
                best_key, best_spread = key, spread
        return best_key, best_spread

    @staticmethod
    def _first_max(properties: List[Any], value_of):
        best = properties[0]
        for p in properties[1:]:
            if value_of(p) > value_of(best):
                best = p
        return best
