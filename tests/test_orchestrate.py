import asyncio
import json
import os
from pathlib import Path

import pytest

from fake_browser import alt, make_locator
from pathfinder import __version__
from pathfinder.aggregator import build_page_scan, score_page_scan
from pathfinder.config import ScanConfig
from pathfinder.exceptions import ConfigurationError, NavigationError
from pathfinder.orchestrate import (
    analyze_urls,
    build_global_recommendations,
    build_site_aggregate,
    deduplicate_urls,
    find_latest_crawl,
    load_crawl,
    normalize_url,
    orchestrate,
)


def _page(url: str, locators=None):
    if locators is None:
        locators = [
            make_locator(strategy="testId", value="buy", alternatives=(alt("testId", "buy"),)),
            make_locator(depth=18),
        ]
    scan = build_page_scan(url, locators, total_elements=len(locators), scanned_at="2024-01-01T00:00:00.000Z", duration=10)
    return score_page_scan(scan)


class RecordingScanner:
    def __init__(self, failing=()) -> None:
        self.failing = set(failing)
        self.calls = []

    async def __call__(self, url, config, scorer):
        self.calls.append((url, config))
        if url in self.failing:
            raise NavigationError(url, config.navigation_attempts, "net::ERR_NAME_NOT_RESOLVED")
        return _page(url)


def test_normalize_url_strips_query_and_fragment() -> None:
    assert normalize_url("https://example.com/pricing?ref=nav#plans") == "https://example.com/pricing"
    assert normalize_url("  http://example.com  ") == "http://example.com"


@pytest.mark.parametrize("url", ["example.com/about", "ftp://example.com/", "/relative/path", ""])
def test_normalize_url_rejects_non_http_urls(url: str) -> None:
    with pytest.raises(ConfigurationError):
        normalize_url(url)


def test_deduplicate_urls_keeps_first_occurrence() -> None:
    urls = [
        "https://example.com/",
        "https://example.com/?utm=1",
        "https://example.com/about",
        "https://example.com/#top",
    ]
    assert deduplicate_urls(urls) == ["https://example.com/", "https://example.com/about"]


def test_analyze_urls_records_failures_and_continues() -> None:
    scanner = RecordingScanner(failing={"https://example.com/broken"})
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    report = asyncio.run(
        analyze_urls(
            ["https://example.com/", "https://example.com/broken", "https://example.com/about?x=1"],
            ScanConfig(delay_ms=250),
            page_scanner=scanner,
            sleep=fake_sleep,
        )
    )

    assert [url for url, _ in scanner.calls] == [
        "https://example.com/",
        "https://example.com/broken",
        "https://example.com/about",
    ]
    assert [page.url for page in report.pages] == ["https://example.com/", "https://example.com/about"]
    assert len(report.failures) == 1
    assert report.failures[0].url == "https://example.com/broken"
    assert "ERR_NAME_NOT_RESOLVED" in report.failures[0].error
    assert sleeps == [0.25, 0.25]
    assert report.tool == "Pathfinder"
    assert report.version == __version__
    assert report.seed_url == "https://example.com/"
    assert report.scanned_urls == (
        "https://example.com/",
        "https://example.com/broken",
        "https://example.com/about",
    )
    assert report.run_id.startswith("run-")
    assert report.aggregate.total_pages == 2


def test_analyze_urls_honours_max_urls() -> None:
    scanner = RecordingScanner()

    report = asyncio.run(
        analyze_urls(
            ["https://a.example.com/", "https://b.example.com/", "https://c.example.com/"],
            ScanConfig(max_urls=2),
            page_scanner=scanner,
        )
    )

    assert len(scanner.calls) == 2
    assert report.scanned_urls == ("https://a.example.com/", "https://b.example.com/")


def test_analyze_urls_fails_fast_on_configuration_error() -> None:
    async def scanner(url, config, scorer):
        raise ConfigurationError("Chromium is not installed for Playwright.")

    with pytest.raises(ConfigurationError):
        asyncio.run(analyze_urls(["https://example.com/"], page_scanner=scanner))


def test_analyze_urls_requires_urls() -> None:
    with pytest.raises(ConfigurationError):
        asyncio.run(analyze_urls([], page_scanner=RecordingScanner()))


def test_site_aggregate_combines_pages() -> None:
    pages = [_page("https://example.com/"), _page("https://example.com/about", [make_locator(id="x"), make_locator(id="x")])]

    aggregate = build_site_aggregate(pages)

    assert aggregate.total_pages == 2
    assert aggregate.total_locators == 4
    assert aggregate.average_locators_per_page == 2
    # page averages: 71 and 58
    assert aggregate.average_stability_score == 65
    assert aggregate.strategy_distribution["xpath"] == 3
    assert aggregate.strategy_distribution["testId"] == 1
    assert aggregate.strategy_distribution["label"] == 0
    assert sum(aggregate.overall_grade_distribution.values()) == 4
    assert aggregate.pages_with_duplicate_ids == 1
    assert aggregate.pages_without_test_ids == 2
    assert aggregate.total_critical_issues == sum(len(page.recommendations.critical_issues) for page in pages)


def test_empty_site_aggregate() -> None:
    aggregate = build_site_aggregate([])

    assert aggregate.total_pages == 0
    assert aggregate.average_locators_per_page == 0
    assert aggregate.average_stability_score == 0
    assert build_global_recommendations([], aggregate).quick_wins == ()


def test_global_recommendations() -> None:
    pages = [
        _page("https://example.com/", [make_locator(id="dup", depth=12), make_locator(id="dup", depth=12)]),
        _page("https://example.com/about", [make_locator(depth=11)]),
    ]

    recommendations = build_global_recommendations(pages, build_site_aggregate(pages))

    assert recommendations.critical_issues == ("1 pages have duplicate IDs - fix immediately",)
    assert recommendations.quick_wins == ("No pages use data-testid - add this to all interactive elements",)
    assert recommendations.best_practices == ("Average DOM depth is 11.5 - consider flattening structure",)


def _write_crawl(path: Path, payload: dict) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_load_crawl_prefers_visited_urls(tmp_path: Path) -> None:
    crawl = _write_crawl(
        tmp_path / "example.crawl.latest.json",
        {
            "visitedUrls": ["https://example.com/", "https://example.com/about"],
            "discoveredUrls": ["https://example.com/", "https://example.com/about", "https://example.com/blog"],
            "limits": {"waitAfter": 1500},
        },
    )

    assert load_crawl(crawl) == (["https://example.com/", "https://example.com/about"], 1500)


def test_load_crawl_falls_back_to_discovered_urls(tmp_path: Path) -> None:
    crawl = _write_crawl(tmp_path / "example.crawl.latest.json", {"visitedUrls": [], "discoveredUrls": ["https://example.com/"]})

    assert load_crawl(crawl) == (["https://example.com/"], None)


def test_load_crawl_rejects_missing_or_empty_files(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_crawl(tmp_path / "missing.crawl.latest.json")
    with pytest.raises(ConfigurationError):
        load_crawl(_write_crawl(tmp_path / "empty.crawl.latest.json", {}))
    broken = tmp_path / "broken.crawl.latest.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_crawl(broken)


def test_find_latest_crawl_uses_modification_time(tmp_path: Path) -> None:
    older = _write_crawl(tmp_path / "old.crawl.latest.json", {"visitedUrls": ["https://old.example.com/"]})
    newer = _write_crawl(tmp_path / "new.crawl.latest.json", {"visitedUrls": ["https://new.example.com/"]})
    _write_crawl(tmp_path / "new.pathfinder.latest.json", {})
    os.utime(older, (1_000_000, 1_000_000))
    os.utime(newer, (2_000_000, 2_000_000))

    assert find_latest_crawl(tmp_path) == newer
    assert find_latest_crawl(tmp_path / "missing") is None


def test_orchestrate_applies_crawl_wait_after(tmp_path: Path) -> None:
    _write_crawl(
        tmp_path / "example.crawl.latest.json",
        {"visitedUrls": ["https://example.com/"], "limits": {"waitAfter": 1500}},
    )
    scanner = RecordingScanner()

    report = asyncio.run(orchestrate(config=ScanConfig(reports_dir=tmp_path), page_scanner=scanner))

    assert report.seed_url == "https://example.com/"
    assert scanner.calls[0][1].wait_after_ms == 1500


def test_orchestrate_keeps_explicit_wait_after(tmp_path: Path) -> None:
    crawl = _write_crawl(
        tmp_path / "example.crawl.latest.json",
        {"visitedUrls": ["https://example.com/"], "limits": {"waitAfter": 1500}},
    )
    scanner = RecordingScanner()

    asyncio.run(
        orchestrate(crawl, ScanConfig(wait_after_ms=0), wait_after_override=True, page_scanner=scanner)
    )

    assert scanner.calls[0][1].wait_after_ms == 0


def test_orchestrate_without_crawl_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        asyncio.run(orchestrate(config=ScanConfig(reports_dir=tmp_path), page_scanner=RecordingScanner()))
