import logging
import math
import os
from typing import Any, Dict, List, Optional

import yaml

from config import Config
from services.decision.categories import CATEGORY_KEYS

logger = logging.getLogger(__name__)

# Percentages for display are rounded to this many decimals
PERCENT_PRECISION = 1


def _coerce_weight(value: Any) -> float:
    """Coerce one raw weight to a finite non-negative float, anything else is 0"""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _absorb_remainder(values: Dict[str, float], target: float, eligible: List[str]) -> Dict[str, float]:
    """Give the rounding residual to the last eligible key so the total is exactly target"""
    if not eligible:
        return values
    last_key = eligible[-1]
    others = sum(values[key] for key in CATEGORY_KEYS if key != last_key)
    values[last_key] = target - others
    return values


class WeightManager:
    """Handles raw importance weights: sanitizing, normalization and presets.

    Raw weights are what the user typed and what gets persisted. Normalized
    weights are proportions summing to exactly 1.0, derived on every read.
    A raw weight of 0 is a valid "exclude this category" signal.
    """

    def __init__(self, presets_path: Optional[str] = None):
        self.presets_path = presets_path or Config.WEIGHT_PRESETS_PATH
        self.presets = self._load_presets()

    def _load_presets(self) -> Dict[str, Dict[str, float]]:
        """Load weight presets from YAML file or defaults"""
        try:
            if self.presets_path and os.path.exists(self.presets_path):
                with open(self.presets_path, 'r') as f:
                    loaded = yaml.safe_load(f)
                if isinstance(loaded, dict) and loaded:
                    presets = {
                        str(name): self.sanitize(values)
                        for name, values in loaded.items()
                        if isinstance(values, dict)
                    }
                    if presets:
                        logger.info(f"Loaded {len(presets)} weight presets from {self.presets_path}")
                        return presets
                logger.warning(f"Ignoring malformed weight presets file {self.presets_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load weight presets from {self.presets_path}: {str(e)}")

        return {name: self.sanitize(values) for name, values in Config.DEFAULT_WEIGHT_PRESETS.items()}

    @staticmethod
    def equal_raw_weights() -> Dict[str, float]:
        return {key: 1.0 for key in CATEGORY_KEYS}

    @staticmethod
    def equal_weights() -> Dict[str, float]:
        """Equal-weight distribution summing to exactly 1.0"""
        share = 1.0 / len(CATEGORY_KEYS)
        weights = {key: share for key in CATEGORY_KEYS}
        return _absorb_remainder(weights, 1.0, list(CATEGORY_KEYS))

    @staticmethod
    def sanitize(raw_weights: Any) -> Dict[str, float]:
        """Map every registry key to a finite non-negative float"""
        if not isinstance(raw_weights, dict):
            raw_weights = {}
        return {key: _coerce_weight(raw_weights.get(key)) for key in CATEGORY_KEYS}

    def normalize_weights(self, raw_weights: Any) -> Dict[str, float]:
        """Normalize raw weights to proportions summing to exactly 1.0.

        The rounding remainder goes to the last category in registry order
        with a positive raw weight rather than the last category overall, so
        a category excluded with weight 0 always normalizes to exactly 0.
        """
        sanitized = self.sanitize(raw_weights)

        total_weight = sum(sanitized.values())
        if total_weight <= 0:
            logger.debug("No positive raw weights, using equal weights")
            return self.equal_weights()

        normalized = {key: value / total_weight for key, value in sanitized.items()}

        # Excluded categories stay at exactly zero
        positive_keys = [key for key in CATEGORY_KEYS if sanitized[key] > 0]
        return _absorb_remainder(normalized, 1.0, positive_keys)

    def hydrate_raw_weights(self, stored_weights: Any) -> Dict[str, float]:
        """Rebuild a full raw weight set from a persisted (possibly partial) mapping"""
        if not isinstance(stored_weights, dict):
            return self.equal_raw_weights()

        hydrated = self.sanitize(stored_weights)
        total = sum(hydrated.values())
        if math.isclose(total, 100.0, abs_tol=0.05):
            # Older sessions persisted normalized percentages; ratios are unchanged
            logger.debug("Stored weights look percentage-normalized, reading them as raw weights")
        return hydrated

    def to_percentages(self, normalized: Dict[str, float]) -> Dict[str, float]:
        """Percent view of normalized weights, rounded, totalling exactly 100.0"""
        percentages = {
            key: round(normalized.get(key, 0.0) * 100, PERCENT_PRECISION)
            for key in CATEGORY_KEYS
        }
        positive_keys = [key for key in CATEGORY_KEYS if normalized.get(key, 0.0) > 0]
        return _absorb_remainder(percentages, 100.0, positive_keys)

    def excluded_categories(self, raw_weights: Any) -> List[str]:
        """Categories switched off by a zero raw weight (none when all are zero)"""
        sanitized = self.sanitize(raw_weights)
        if sum(sanitized.values()) <= 0:
            return []
        return [key for key in CATEGORY_KEYS if sanitized[key] == 0]

    def top_category(self, normalized: Dict[str, float]) -> str:
        """Highest-weighted category, earliest in registry order on ties"""
        best_key = CATEGORY_KEYS[0]
        for key in CATEGORY_KEYS:
            if normalized.get(key, 0.0) > normalized.get(best_key, 0.0):
                best_key = key
        return best_key

    def preset_names(self) -> List[str]:
        return list(self.presets.keys())

    def get_preset(self, name: str) -> Dict[str, float]:
        """Raw weights of a preset, raising ValueError for unknown names"""
        if name not in self.presets:
            raise ValueError(f"Unknown weight preset: {name}")
        return dict(self.presets[name])
