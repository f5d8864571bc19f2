from __future__ import annotations

from typing import Callable

from .models import ExtractedLocator, Grade, LocatorScore, ScoreReasoning
from .scoring_config import DEFAULT_SCORING_CONFIG, ScoringConfig
from .selector_rules import dynamic_classes

StabilityAdjustment = Callable[[ExtractedLocator, ScoringConfig], int]


def _class_adjustment(locator: ExtractedLocator, config: ScoringConfig) -> int:
    generated = dynamic_classes(locator.classes, config.dynamic_class_patterns)
    return -config.dynamic_class_penalty * len(generated)


def _text_adjustment(locator: ExtractedLocator, config: ScoringConfig) -> int:
    text = locator.text or ""
    if len(text) > config.long_text_threshold:
        return -config.long_text_penalty
    if len(text) > config.medium_text_threshold:
        return -config.medium_text_penalty
    return 0


STRATEGY_ADJUSTMENTS: dict[str, StabilityAdjustment] = {
    "class": _class_adjustment,
    "text": _text_adjustment,
}


def score_uniqueness(locator: ExtractedLocator, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> int:
    if locator.is_unique:
        return 100
    unique = [alt for alt in locator.alternatives if alt.is_unique]
    if any(config.strategy_score(alt.strategy) >= config.quality_alternative_min for alt in unique):
        return 80
    if unique:
        return 60
    return 20


def score_depth(depth: int, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> int:
    for bound, score in config.depth_bands:
        if depth <= bound:
            return score
    return config.deepest_depth_score


def count_quality_alternatives(locator: ExtractedLocator, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> int:
    return sum(
        1
        for alt in locator.alternatives
        if alt.is_unique and config.strategy_score(alt.strategy) >= config.bonus_alternative_min
    )


def score_stability(locator: ExtractedLocator, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> int:
    score = config.strategy_score(locator.strategy)

    adjustment = STRATEGY_ADJUSTMENTS.get(locator.strategy)
    if adjustment is not None:
        score += adjustment(locator, config)

    quality_alternatives = count_quality_alternatives(locator, config)
    for minimum, bonus in config.alternative_bonus_tiers:
        if quality_alternatives >= minimum:
            score += bonus
            break

    if locator.role or locator.aria_label:
        score += config.semantic_bonus

    return max(0, min(100, score))


def calculate_total_score(
    strategy_score: int,
    uniqueness_score: int,
    depth_score: int,
    stability_score: int,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> int:
    weights = config.weights
    weighted = (
        strategy_score * weights["strategy"]
        + uniqueness_score * weights["uniqueness"]
        + depth_score * weights["depth"]
        + stability_score * weights["stability"]
    )
    # Integer arithmetic: weights are percentages, (x + 50) // 100 rounds half up.
    return max(0, min(100, (weighted + 50) // 100))


def assign_grade(score: int, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> Grade:
    for minimum, grade in config.grade_thresholds:
        if score >= minimum:
            return grade  # type: ignore[return-value]
    return "F"


def _strategy_label(strategy: str) -> str:
    return strategy.replace("_", " ")


def _strategy_verdict(score: int) -> str:
    if score >= 90:
        return "Excellent choice - highly resistant to changes."
    if score >= 75:
        return "Good choice - reasonably stable."
    if score >= 60:
        return "Acceptable but could be better."
    if score >= 40:
        return "Risky - prone to breaking."
    return "Very risky - highly brittle."


def generate_reasoning(
    locator: ExtractedLocator,
    strategy_score: int,
    uniqueness_score: int,
    depth_score: int,
    stability_score: int,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> ScoreReasoning:
    strategy = f"Using {_strategy_label(locator.strategy)} (score: {strategy_score}/100). {_strategy_verdict(strategy_score)}"

    if locator.is_unique:
        uniqueness = f"Unique on page (score: {uniqueness_score}/100). No ambiguity."
    elif any(alt.is_unique for alt in locator.alternatives):
        uniqueness = (
            f"Not unique, but has unique alternative (score: {uniqueness_score}/100). Consider switching."
        )
    else:
        uniqueness = (
            f"Not unique on page (score: {uniqueness_score}/100). "
            "Critical issue - will match multiple elements."
        )

    if locator.depth <= 5:
        depth_note = "Shallow nesting - excellent."
    elif locator.depth <= 10:
        depth_note = "Moderate nesting - acceptable."
    else:
        depth_note = "Deep nesting - refactoring could break this."
    depth = f"DOM depth: {locator.depth} levels (score: {depth_score}/100). {depth_note}"

    notes: list[str] = []
    if dynamic_classes(locator.classes, config.dynamic_class_patterns):
        notes.append("Warning: Uses dynamically generated classes.")
    if locator.text and len(locator.text) > config.medium_text_threshold:
        notes.append("Warning: Long text content may change.")
    if locator.role or locator.aria_label:
        notes.append("Bonus: Semantic HTML detected.")
    stability = f"Stability analysis (score: {stability_score}/100)."
    if notes:
        stability = f"{stability} {' '.join(notes)}"

    return ScoreReasoning(
        stability=stability,
        uniqueness=uniqueness,
        depth=depth,
        strategy=strategy,
    )


def generate_warnings(
    locator: ExtractedLocator, total_score: int, config: ScoringConfig = DEFAULT_SCORING_CONFIG
) -> list[str]:
    warnings: list[str] = []

    if not locator.is_unique and not any(alt.is_unique for alt in locator.alternatives):
        warnings.append("CRITICAL: No unique locator available - will match multiple elements")
    if locator.strategy in {"xpath", "css"}:
        warnings.append("Brittle locator type - highly likely to break with DOM changes")
    deepest_bound = config.depth_bands[-1][0] if config.depth_bands else 0
    if locator.depth > deepest_bound:
        warnings.append("Extremely deep nesting - very fragile")

    generated = dynamic_classes(locator.classes, config.dynamic_class_patterns)
    if generated:
        warnings.append(f"Dynamic classes detected: {', '.join(generated)}")
    if locator.strategy == "text" and locator.text and len(locator.text) > config.long_text_threshold:
        warnings.append("Long text content - likely to change with copy updates")
    if total_score < config.failing_threshold:
        warnings.append("Low overall score - find a better alternative")
    return warnings


def suggest_better_alternatives(
    locator: ExtractedLocator, config: ScoringConfig = DEFAULT_SCORING_CONFIG
) -> list[str] | None:
    current = config.strategy_score(locator.strategy)
    better = [
        alt
        for alt in locator.alternatives
        if alt.is_unique and config.strategy_score(alt.strategy) > current
    ]
    better.sort(key=lambda alt: config.strategy_score(alt.strategy), reverse=True)

    suggestions = [
        f'Use {_strategy_label(alt.strategy)}: "{alt.value}" (score: {config.strategy_score(alt.strategy)}/100)'
        for alt in better[:3]
    ]
    if not locator.has_strategy("testId"):
        suggestions.append("Add data-testid attribute for maximum stability")
    return suggestions or None


class StabilityScorer:
    """Turns an extracted locator into weighted sub-scores, a grade and explanations.

    The scorer holds no state besides its configuration, so the same locator
    always produces an equal ``LocatorScore``.
    """

    def __init__(self, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> None:
        self.config = config

    def score(self, locator: ExtractedLocator) -> LocatorScore:
        config = self.config
        strategy_score = config.strategy_score(locator.strategy)
        uniqueness_score = score_uniqueness(locator, config)
        depth_score = score_depth(locator.depth, config)
        stability_score = score_stability(locator, config)

        total_score = calculate_total_score(
            strategy_score, uniqueness_score, depth_score, stability_score, config
        )
        better = suggest_better_alternatives(locator, config)

        return LocatorScore(
            locator=locator,
            stability_score=stability_score,
            uniqueness_score=uniqueness_score,
            depth_score=depth_score,
            strategy_score=strategy_score,
            total_score=total_score,
            grade=assign_grade(total_score, config),
            elo_rating=config.initial_elo,
            reasoning=generate_reasoning(
                locator, strategy_score, uniqueness_score, depth_score, stability_score, config
            ),
            recommended=total_score >= config.recommended_threshold,
            warnings=tuple(generate_warnings(locator, total_score, config)),
            better_alternatives=tuple(better) if better else None,
        )


def score_locator(locator: ExtractedLocator, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> LocatorScore:
    return StabilityScorer(config).score(locator)
