import logging
from typing import Any, Dict, List, Optional

from services.decision.insight_analyzer import InsightAnalyzer, Insights
from services.decision.score_calculator import ScoreCalculator
from services.decision.weight_manager import WeightManager

logger = logging.getLogger(__name__)


class DecisionService:
    """Main decision service - coordinates the decision components

    Pure with respect to its inputs: every call recomputes from the given
    properties and weights, nothing is cached between calls.

    - WeightManager: raw weight sanitizing, normalization and presets
    - ScoreCalculator: weighted-additive score per property
    - InsightAnalyzer: ranking and comparative insights
    """

    def __init__(self, weight_manager: Optional[WeightManager] = None):
        self.weight_manager = weight_manager or WeightManager()
        self.score_calculator = ScoreCalculator()
        self.insight_analyzer = InsightAnalyzer(self.score_calculator, self.weight_manager)

    def normalize(self, raw_weights: Any) -> Dict[str, float]:
        return self.weight_manager.normalize_weights(raw_weights)

    def score(self, property, normalized_weights: Dict[str, float]) -> float:
        return self.score_calculator.weighted_score(property, normalized_weights)

    def analyze(self, properties: List[Any], normalized_weights: Dict[str, float]) -> Insights:
        insights = self.insight_analyzer.analyze(properties, normalized_weights)
        if insights.available:
            logger.info(f"Analyzed {len(properties)} properties: "
                        f"winner={insights.winner.property.id}, margin={insights.margin}")
        return insights

    def analyze_raw(self, properties: List[Any], raw_weights: Any) -> Insights:
        """Normalize then analyze, for callers holding raw weights"""
        return self.analyze(properties, self.normalize(raw_weights))

    def summarize_property(self, property, normalized_weights: Dict[str, float]) -> Dict[str, Any]:
        """Card view of a property: stored fields plus derived scores"""
        data = property.to_dict()
        data['weightedScore'] = round(self.score(property, normalized_weights), 2)
        data['scoreBand'] = self.score_calculator.score_band(property.structural_score)
        data['emotionLeading'] = property.emotional_pull > property.structural_score
        return data
