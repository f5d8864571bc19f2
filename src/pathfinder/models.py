from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

LocatorStrategy = Literal[
    "testId",
    "data_attr",
    "id_attr",
    "aria_label",
    "role",
    "autocomplete",
    "name_attr",
    "label",
    "title",
    "placeholder",
    "text",
    "class",
    "css",
    "xpath",
]

Grade = Literal["A", "B", "C", "D", "F"]

ElementType = Literal["button", "link", "input", "select", "textarea", "heading", "form", "other"]

GRADES: tuple[Grade, ...] = ("A", "B", "C", "D", "F")


@dataclass(frozen=True, slots=True)
class CandidateAlternative:
    strategy: LocatorStrategy
    value: str
    is_unique: bool


@dataclass(frozen=True, slots=True)
class ExtractedLocator:
    tag_name: str
    element_type: str
    strategy: LocatorStrategy
    value: str
    alternatives: tuple[CandidateAlternative, ...]
    xpath: str
    css_selector: str
    depth: int
    is_unique: bool
    sibling_count: int
    text: str | None = None
    aria_label: str | None = None
    role: str | None = None
    classes: tuple[str, ...] | None = None
    id: str | None = None
    name: str | None = None
    parent_tag: str | None = None
    parent_classes: tuple[str, ...] | None = None

    def has_strategy(self, strategy: str) -> bool:
        return any(alt.strategy == strategy for alt in self.alternatives)


@dataclass(frozen=True, slots=True)
class ScoreReasoning:
    stability: str
    uniqueness: str
    depth: str
    strategy: str


@dataclass(frozen=True, slots=True)
class LocatorScore:
    locator: ExtractedLocator
    stability_score: int
    uniqueness_score: int
    depth_score: int
    strategy_score: int
    total_score: int
    grade: Grade
    elo_rating: int
    reasoning: ScoreReasoning
    recommended: bool
    warnings: tuple[str, ...]
    better_alternatives: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class PageStats:
    total_elements: int
    total_locators: int
    unique_locators: int
    by_strategy: dict[str, int]
    by_element_type: dict[str, int]
    average_depth: float
    skipped_elements: int = 0


@dataclass(frozen=True, slots=True)
class PageIssues:
    duplicate_ids: tuple[str, ...]
    missing_test_ids: int
    deeply_nested: int
    dynamic_classes: tuple[str, ...]
    no_stable_locator: int


@dataclass(frozen=True, slots=True)
class PageLocatorScan:
    url: str
    scanned_at: str
    duration: int
    locators: tuple[ExtractedLocator, ...]
    stats: PageStats
    issues: PageIssues


@dataclass(frozen=True, slots=True)
class ScoreStats:
    average: int
    median: float
    min: int
    max: int
    grade_distribution: dict[str, int]


@dataclass(frozen=True, slots=True)
class PageRecommendations:
    top_locators: tuple[LocatorScore, ...]
    risky_locators: tuple[LocatorScore, ...]
    critical_issues: tuple[str, ...]
    improvements: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class PageLocatorReport(PageLocatorScan):
    scored: tuple[LocatorScore, ...]
    score_stats: ScoreStats
    recommendations: PageRecommendations


@dataclass(frozen=True, slots=True)
class PageFailure:
    url: str
    error: str


@dataclass(frozen=True, slots=True)
class SiteAggregate:
    total_pages: int
    total_locators: int
    average_locators_per_page: int
    average_stability_score: int
    strategy_distribution: dict[str, int]
    overall_grade_distribution: dict[str, int]
    pages_with_duplicate_ids: int
    pages_without_test_ids: int
    total_critical_issues: int


@dataclass(frozen=True, slots=True)
class GlobalRecommendations:
    best_practices: tuple[str, ...]
    critical_issues: tuple[str, ...]
    quick_wins: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class SiteLocatorReport:
    tool: str
    version: str
    run_id: str
    seed_url: str
    scanned_urls: tuple[str, ...]
    started_at: str
    finished_at: str
    total_duration: int
    pages: tuple[PageLocatorReport, ...]
    failures: tuple[PageFailure, ...]
    aggregate: SiteAggregate
    global_recommendations: GlobalRecommendations
