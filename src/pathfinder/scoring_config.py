from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Pattern

from .exceptions import ConfigurationError
from .selector_rules import DYNAMIC_CLASS_PATTERNS

SCORING_TABLE_VERSION = "1.3.0"

# Base quality per strategy kind, ordered by resistance to UI refactors.
STRATEGY_SCORES: Mapping[str, int] = MappingProxyType(
    {
        "testId": 100,
        "data_attr": 95,
        "id_attr": 90,
        "aria_label": 85,
        "role": 80,
        "autocomplete": 80,
        "name_attr": 75,
        "label": 75,
        "title": 70,
        "placeholder": 70,
        "text": 50,
        "class": 40,
        "css": 30,
        "xpath": 20,
    }
)

# Integer percentages so the weighted total stays exact.
SCORE_WEIGHTS: Mapping[str, int] = MappingProxyType(
    {
        "strategy": 40,
        "uniqueness": 30,
        "depth": 20,
        "stability": 10,
    }
)

# (max depth inclusive, score); anything deeper gets DEEPEST_DEPTH_SCORE.
DEPTH_BANDS: tuple[tuple[int, int], ...] = (
    (3, 100),
    (5, 90),
    (8, 75),
    (10, 60),
    (15, 40),
)
DEEPEST_DEPTH_SCORE = 20

GRADE_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)

INITIAL_ELO = 1500


@dataclass(frozen=True, slots=True)
class ScoringConfig:
    version: str = SCORING_TABLE_VERSION
    strategy_scores: Mapping[str, int] = field(default_factory=lambda: STRATEGY_SCORES)
    weights: Mapping[str, int] = field(default_factory=lambda: SCORE_WEIGHTS)
    depth_bands: tuple[tuple[int, int], ...] = DEPTH_BANDS
    deepest_depth_score: int = DEEPEST_DEPTH_SCORE
    grade_thresholds: tuple[tuple[int, str], ...] = GRADE_THRESHOLDS
    dynamic_class_patterns: tuple[Pattern[str], ...] = DYNAMIC_CLASS_PATTERNS
    recommended_threshold: int = 70
    failing_threshold: int = 60
    # uniqueness tiers
    quality_alternative_min: int = 70
    # stability adjustments
    dynamic_class_penalty: int = 10
    long_text_threshold: int = 50
    long_text_penalty: int = 20
    medium_text_threshold: int = 30
    medium_text_penalty: int = 10
    bonus_alternative_min: int = 75
    alternative_bonus_tiers: tuple[tuple[int, int], ...] = ((3, 15), (2, 10), (1, 5))
    semantic_bonus: int = 5
    initial_elo: int = INITIAL_ELO

    def __post_init__(self) -> None:
        if not isinstance(self.strategy_scores, MappingProxyType):
            object.__setattr__(self, "strategy_scores", MappingProxyType(dict(self.strategy_scores)))
        if not isinstance(self.weights, MappingProxyType):
            object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))

        missing = {"strategy", "uniqueness", "depth", "stability"} - set(self.weights)
        if missing:
            raise ConfigurationError(f"Scoring weights missing: {', '.join(sorted(missing))}")
        if sum(self.weights.values()) != 100:
            raise ConfigurationError("Scoring weights must add up to 100.")
        for strategy, score in self.strategy_scores.items():
            if not 0 <= score <= 100:
                raise ConfigurationError(f"Strategy score for {strategy} must be within 0..100.")
        bounds = [bound for bound, _score in self.depth_bands]
        if bounds != sorted(bounds):
            raise ConfigurationError("Depth bands must be ordered by depth.")
        band_scores = [score for _bound, score in self.depth_bands] + [self.deepest_depth_score]
        if band_scores != sorted(band_scores, reverse=True):
            raise ConfigurationError("Depth band scores must not increase with depth.")

    def strategy_score(self, strategy: str) -> int:
        return int(self.strategy_scores.get(strategy, 0))


DEFAULT_SCORING_CONFIG = ScoringConfig()
