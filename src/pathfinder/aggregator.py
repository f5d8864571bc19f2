from __future__ import annotations

from collections import Counter
from typing import Sequence

from .models import (
    GRADES,
    ExtractedLocator,
    LocatorScore,
    PageIssues,
    PageLocatorReport,
    PageLocatorScan,
    PageRecommendations,
    PageStats,
    ScoreStats,
)
from .scoring import StabilityScorer
from .scoring_config import DEFAULT_SCORING_CONFIG, ScoringConfig
from .selector_rules import dynamic_classes
from .utils import median, round_half_up

DEEP_NESTING_THRESHOLD = 10
STABLE_STRATEGIES = frozenset({"testId", "id_attr", "aria_label"})
RANKING_SIZE = 10


def detect_issues(
    locators: Sequence[ExtractedLocator], config: ScoringConfig = DEFAULT_SCORING_CONFIG
) -> PageIssues:
    seen_ids: set[str] = set()
    duplicate_ids: list[str] = []
    generated_classes: list[str] = []
    missing_test_ids = 0
    deeply_nested = 0
    no_stable_locator = 0

    for locator in locators:
        if locator.id:
            if locator.id in seen_ids and locator.id not in duplicate_ids:
                duplicate_ids.append(locator.id)
            seen_ids.add(locator.id)

        if not locator.has_strategy("testId"):
            missing_test_ids += 1
        if locator.depth > DEEP_NESTING_THRESHOLD:
            deeply_nested += 1

        for class_name in dynamic_classes(locator.classes, config.dynamic_class_patterns):
            if class_name not in generated_classes:
                generated_classes.append(class_name)

        if not any(alt.is_unique and alt.strategy in STABLE_STRATEGIES for alt in locator.alternatives):
            no_stable_locator += 1

    return PageIssues(
        duplicate_ids=tuple(duplicate_ids),
        missing_test_ids=missing_test_ids,
        deeply_nested=deeply_nested,
        dynamic_classes=tuple(generated_classes),
        no_stable_locator=no_stable_locator,
    )


def compute_stats(
    locators: Sequence[ExtractedLocator], total_elements: int, skipped_elements: int = 0
) -> PageStats:
    by_strategy = Counter(locator.strategy for locator in locators)
    by_element_type = Counter(locator.element_type for locator in locators)
    total_depth = sum(locator.depth for locator in locators)
    return PageStats(
        total_elements=total_elements,
        total_locators=len(locators),
        unique_locators=sum(1 for locator in locators if locator.is_unique),
        by_strategy=dict(by_strategy),
        by_element_type=dict(by_element_type),
        average_depth=total_depth / len(locators) if locators else 0.0,
        skipped_elements=skipped_elements,
    )


def build_page_scan(
    url: str,
    locators: Sequence[ExtractedLocator],
    *,
    total_elements: int,
    scanned_at: str,
    duration: int,
    skipped_elements: int = 0,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> PageLocatorScan:
    return PageLocatorScan(
        url=url,
        scanned_at=scanned_at,
        duration=duration,
        locators=tuple(locators),
        stats=compute_stats(locators, total_elements, skipped_elements),
        issues=detect_issues(locators, config),
    )


def compute_score_stats(scored: Sequence[LocatorScore]) -> ScoreStats:
    totals = [item.total_score for item in scored]
    grades = Counter(item.grade for item in scored)
    return ScoreStats(
        average=round_half_up(sum(totals) / len(totals)) if totals else 0,
        median=median(totals),
        min=min(totals) if totals else 0,
        max=max(totals) if totals else 0,
        grade_distribution={grade: grades.get(grade, 0) for grade in GRADES},
    )


def rank_locators(scored: Sequence[LocatorScore]) -> tuple[tuple[LocatorScore, ...], tuple[LocatorScore, ...]]:
    """Top and bottom ``RANKING_SIZE`` by total score; ties keep encounter order."""
    best_first = sorted(scored, key=lambda item: -item.total_score)
    worst_first = sorted(scored, key=lambda item: item.total_score)
    return tuple(best_first[:RANKING_SIZE]), tuple(worst_first[:RANKING_SIZE])


def build_recommendations(
    scan: PageLocatorScan,
    scored: Sequence[LocatorScore],
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> PageRecommendations:
    top, risky = rank_locators(scored)
    issues = scan.issues

    critical: list[str] = []
    if issues.duplicate_ids:
        critical.append(f"Duplicate IDs found: {', '.join(issues.duplicate_ids)}")
    if issues.no_stable_locator > 0:
        critical.append(f"{issues.no_stable_locator} elements have no stable locator")
    failing = sum(1 for item in scored if item.total_score < config.failing_threshold)
    if failing > 0:
        critical.append(f"{failing} locators have failing grades (F)")

    improvements: list[str] = []
    if issues.missing_test_ids > 0:
        improvements.append(f"Add data-testid to {issues.missing_test_ids} elements for better stability")
    if issues.dynamic_classes:
        improvements.append(f"Avoid dynamic classes like: {', '.join(issues.dynamic_classes[:3])}")
    if scan.stats.average_depth > DEEP_NESTING_THRESHOLD:
        improvements.append(f"Reduce DOM nesting - average depth is {scan.stats.average_depth:.1f} levels")

    return PageRecommendations(
        top_locators=top,
        risky_locators=risky,
        critical_issues=tuple(critical),
        improvements=tuple(improvements),
    )


def score_page_scan(scan: PageLocatorScan, scorer: StabilityScorer | None = None) -> PageLocatorReport:
    scorer = scorer or StabilityScorer()
    scored = tuple(scorer.score(locator) for locator in scan.locators)
    return PageLocatorReport(
        url=scan.url,
        scanned_at=scan.scanned_at,
        duration=scan.duration,
        locators=scan.locators,
        stats=scan.stats,
        issues=scan.issues,
        scored=scored,
        score_stats=compute_score_stats(scored),
        recommendations=build_recommendations(scan, scored, scorer.config),
    )
