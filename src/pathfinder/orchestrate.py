from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import replace
import json
import logging
from pathlib import Path
import time
from typing import Any, Awaitable, Callable, Iterable, Sequence
from urllib.parse import urlsplit, urlunsplit

from . import __version__
from .config import ScanConfig
from .exceptions import ConfigurationError
from .models import (
    GRADES,
    GlobalRecommendations,
    PageFailure,
    PageLocatorReport,
    SiteAggregate,
    SiteLocatorReport,
)
from .scanner import scan_and_score
from .scoring import StabilityScorer
from .scoring_config import STRATEGY_SCORES
from .utils import elapsed_ms, format_duration, now_iso, round_half_up, run_id

logger = logging.getLogger("pathfinder.orchestrate")

TOOL_NAME = "Pathfinder"
CRAWL_SUFFIX = ".crawl.latest.json"

PageScanner = Callable[[str, ScanConfig, StabilityScorer], Awaitable[PageLocatorReport]]


def normalize_url(url: str) -> str:
    """Strip query and fragment; reject anything that is not an absolute http(s) URL."""
    parts = urlsplit(url.strip())
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ConfigurationError(f"Not an absolute http(s) URL: {url!r}")
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def deduplicate_urls(urls: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for url in urls:
        normalized = normalize_url(url)
        if normalized in seen:
            continue
        seen.add(normalized)
        unique.append(normalized)
    return unique


def find_latest_crawl(reports_dir: Path) -> Path | None:
    if not reports_dir.is_dir():
        return None
    candidates = sorted(
        (path for path in reports_dir.iterdir() if path.name.endswith(CRAWL_SUFFIX)),
        key=lambda path: path.stat().st_mtime,
        reverse=True,
    )
    return candidates[0] if candidates else None


def load_crawl(crawl_path: Path) -> tuple[list[str], int | None]:
    """Return the crawl's visited URLs (or discovered ones) and its recorded waitAfter."""
    if not crawl_path.is_file():
        raise ConfigurationError(f"Crawl file not found: {crawl_path}")
    try:
        crawl: dict[str, Any] = json.loads(crawl_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Crawl file is not valid JSON: {crawl_path} ({exc})") from exc

    visited = crawl.get("visitedUrls")
    urls = visited if isinstance(visited, list) and visited else crawl.get("discoveredUrls") or []
    if not urls:
        raise ConfigurationError(f"No URLs found in crawl file: {crawl_path}")

    limits = crawl.get("limits") or {}
    wait_after = limits.get("waitAfter") if isinstance(limits, dict) else None
    return [str(url) for url in urls], wait_after if isinstance(wait_after, int) else None


def build_site_aggregate(pages: Sequence[PageLocatorReport]) -> SiteAggregate:
    total_locators = sum(len(page.locators) for page in pages)

    strategies: Counter[str] = Counter({strategy: 0 for strategy in STRATEGY_SCORES})
    grades: Counter[str] = Counter({grade: 0 for grade in GRADES})
    for page in pages:
        strategies.update(page.stats.by_strategy)
        grades.update(page.score_stats.grade_distribution)

    return SiteAggregate(
        total_pages=len(pages),
        total_locators=total_locators,
        average_locators_per_page=round_half_up(total_locators / len(pages)) if pages else 0,
        average_stability_score=(
            round_half_up(sum(page.score_stats.average for page in pages) / len(pages)) if pages else 0
        ),
        strategy_distribution=dict(strategies),
        overall_grade_distribution=dict(grades),
        pages_with_duplicate_ids=sum(1 for page in pages if page.issues.duplicate_ids),
        pages_without_test_ids=sum(1 for page in pages if page.issues.missing_test_ids > 0),
        total_critical_issues=sum(len(page.recommendations.critical_issues) for page in pages),
    )


def build_global_recommendations(
    pages: Sequence[PageLocatorReport], aggregate: SiteAggregate
) -> GlobalRecommendations:
    best_practices: list[str] = []
    critical: list[str] = []
    quick_wins: list[str] = []

    if aggregate.pages_with_duplicate_ids > 0:
        critical.append(f"{aggregate.pages_with_duplicate_ids} pages have duplicate IDs - fix immediately")

    if pages:
        without = aggregate.pages_without_test_ids
        if without == len(pages):
            quick_wins.append("No pages use data-testid - add this to all interactive elements")
        elif without > len(pages) / 2:
            quick_wins.append(f"{without}/{len(pages)} pages lack data-testid - prioritize adding them")

        average_depth = sum(page.stats.average_depth for page in pages) / len(pages)
        if average_depth > 10:
            best_practices.append(f"Average DOM depth is {average_depth:.1f} - consider flattening structure")

    return GlobalRecommendations(
        best_practices=tuple(best_practices),
        critical_issues=tuple(critical),
        quick_wins=tuple(quick_wins),
    )


async def _default_page_scanner(url: str, config: ScanConfig, scorer: StabilityScorer) -> PageLocatorReport:
    return await scan_and_score(url, config, scorer)


async def analyze_urls(
    urls: Sequence[str],
    config: ScanConfig | None = None,
    *,
    scorer: StabilityScorer | None = None,
    page_scanner: PageScanner = _default_page_scanner,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> SiteLocatorReport:
    """Scan each URL in its own session and combine the pages into a site report.

    A page that cannot be scanned becomes a ``PageFailure`` and the remaining
    pages are still processed.
    """
    config = config or ScanConfig()
    scorer = scorer or StabilityScorer()
    targets = deduplicate_urls(urls)
    if config.max_urls is not None:
        targets = targets[: config.max_urls]
    if not targets:
        raise ConfigurationError("No URLs to analyze.")

    started_at = now_iso()
    started = time.monotonic()
    logger.info("Pathfinder Analysis")
    logger.info("URLs to analyze: %s", len(targets))
    logger.info("Delay: %sms between requests", config.delay_ms)

    pages: list[PageLocatorReport] = []
    failures: list[PageFailure] = []
    for index, url in enumerate(targets):
        logger.info("[%s/%s] %s", index + 1, len(targets), url)
        try:
            page = await page_scanner(url, config, scorer)
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.error("Failed: %s", exc)
            failures.append(PageFailure(url=url, error=str(exc)))
        else:
            pages.append(page)
            logger.info("  > Found %s locators (avg score: %s)", len(page.locators), page.score_stats.average)
            distribution = page.score_stats.grade_distribution
            logger.debug(
                "    Grade distribution: %s",
                " ".join(f"{grade}={distribution.get(grade, 0)}" for grade in GRADES),
            )

        if config.delay_ms and index < len(targets) - 1:
            logger.debug("Waiting %sms before next URL...", config.delay_ms)
            await sleep(config.delay_ms / 1000)

    logger.info("Analysis complete")
    logger.info("Success: %s/%s", len(pages), len(targets))
    if failures:
        logger.info("Failures: %s", len(failures))

    aggregate = build_site_aggregate(pages)
    duration = elapsed_ms(started)
    logger.info("Duration: %s", format_duration(duration))

    return SiteLocatorReport(
        tool=TOOL_NAME,
        version=__version__,
        run_id=run_id(),
        seed_url=targets[0],
        scanned_urls=tuple(targets),
        started_at=started_at,
        finished_at=now_iso(),
        total_duration=duration,
        pages=tuple(pages),
        failures=tuple(failures),
        aggregate=aggregate,
        global_recommendations=build_global_recommendations(pages, aggregate),
    )


async def orchestrate(
    crawl_path: Path | None = None,
    config: ScanConfig | None = None,
    *,
    wait_after_override: bool = False,
    scorer: StabilityScorer | None = None,
    page_scanner: PageScanner = _default_page_scanner,
) -> SiteLocatorReport:
    """Analyze the URLs of a crawl file (the newest one in ``reports_dir`` when omitted).

    The crawl's recorded ``waitAfter`` applies unless ``wait_after_override`` is set.
    """
    config = config or ScanConfig()
    if crawl_path is None:
        logger.info("No crawl file specified, searching for latest...")
        crawl_path = find_latest_crawl(config.reports_dir)
        if crawl_path is None:
            raise ConfigurationError(f"No crawl file found in {config.reports_dir}")
        logger.info("Found: %s", crawl_path.name)

    urls, crawl_wait_after = load_crawl(crawl_path)
    if crawl_wait_after is not None and not wait_after_override:
        config = replace(config, wait_after_ms=crawl_wait_after)
    logger.info("Crawl file: %s", crawl_path.name)
    return await analyze_urls(urls, config, scorer=scorer, page_scanner=page_scanner)
