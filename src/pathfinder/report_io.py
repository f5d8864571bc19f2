from __future__ import annotations

import csv
from dataclasses import MISSING, dataclass, fields, is_dataclass
from datetime import datetime
import io
import json
import logging
from pathlib import Path
import types
from typing import Any, Literal, TypeVar, Union, get_args, get_origin, get_type_hints

from .exceptions import ConfigurationError, ReportFormatError
from .models import PageLocatorReport, SiteLocatorReport
from .scoring import assign_grade
from .utils import extract_host_base, format_duration, timestamp_for_filename

logger = logging.getLogger("pathfinder.report")

T = TypeVar("T")

TRAINING_COLUMNS = ("url", "tagName", "strategy", "value", "depth", "isUnique", "totalScore", "grade", "eloRating")


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_jsonable(value: Any) -> Any:
    """Convert report objects into JSON-ready data with camelCase keys; ``None`` fields are omitted."""
    if is_dataclass(value) and not isinstance(value, type):
        payload: dict[str, Any] = {}
        for item in fields(value):
            field_value = getattr(value, item.name)
            if field_value is None:
                continue
            payload[camel_case(item.name)] = to_jsonable(field_value)
        return payload
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    return value


def from_jsonable(cls: type[T], data: Any) -> T:
    if not isinstance(data, dict):
        raise ReportFormatError(f"Expected an object for {cls.__name__}, got {type(data).__name__}.")
    hints = get_type_hints(cls)
    values: dict[str, Any] = {}
    for item in fields(cls):  # type: ignore[arg-type]
        key = camel_case(item.name)
        if key not in data:
            if item.default is not MISSING or item.default_factory is not MISSING:
                continue
            raise ReportFormatError(f"Missing field {key!r} in {cls.__name__}.")
        values[item.name] = _decode(hints[item.name], data[key], key)
    return cls(**values)


def _decode(hint: Any, value: Any, key: str) -> Any:
    origin = get_origin(hint)
    args = get_args(hint)

    if hint is Any:
        return value
    if origin is Union or origin is types.UnionType:
        if value is None and type(None) in args:
            return None
        options = [arg for arg in args if arg is not type(None)]
        return _decode(options[0], value, key)
    if value is None:
        raise ReportFormatError(f"Field {key!r} must not be null.")
    if origin is Literal:
        if value not in args:
            raise ReportFormatError(f"Field {key!r} has unexpected value {value!r}.")
        return value
    if origin in (tuple, list):
        if not isinstance(value, list):
            raise ReportFormatError(f"Field {key!r} must be a list.")
        item_hint = args[0] if args else Any
        decoded = [_decode(item_hint, item, key) for item in value]
        return tuple(decoded) if origin is tuple else decoded
    if origin is dict:
        if not isinstance(value, dict):
            raise ReportFormatError(f"Field {key!r} must be an object.")
        value_hint = args[1] if len(args) == 2 else Any
        return {str(name): _decode(value_hint, item, key) for name, item in value.items()}
    if isinstance(hint, type) and is_dataclass(hint):
        return from_jsonable(hint, value)
    if hint is bool:
        if not isinstance(value, bool):
            raise ReportFormatError(f"Field {key!r} must be a boolean.")
        return value
    if hint is int:
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ReportFormatError(f"Field {key!r} must be an integer.")
        return value
    if hint is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ReportFormatError(f"Field {key!r} must be a number.")
        # ints stay ints so a reloaded report serializes to the same text
        return value
    if hint is str:
        if not isinstance(value, str):
            raise ReportFormatError(f"Field {key!r} must be a string.")
        return value
    return value


def dumps_report(report: SiteLocatorReport | PageLocatorReport) -> str:
    return json.dumps(to_jsonable(report), indent=2, ensure_ascii=False)


def loads_site_report(text: str) -> SiteLocatorReport:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ReportFormatError(f"Report is not valid JSON: {exc}") from exc
    return from_jsonable(SiteLocatorReport, payload)


def loads_page_report(text: str) -> PageLocatorReport:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ReportFormatError(f"Report is not valid JSON: {exc}") from exc
    return from_jsonable(PageLocatorReport, payload)


def load_site_report(path: Path) -> SiteLocatorReport:
    if not path.is_file():
        raise ConfigurationError(f"Report not found: {path}")
    return loads_site_report(path.read_text(encoding="utf-8"))


@dataclass(frozen=True, slots=True)
class SavedReport:
    timestamped: Path
    latest: Path


def report_paths(base_name: str, file_type: str, reports_dir: Path, moment: datetime | None = None) -> SavedReport:
    stamp = timestamp_for_filename(moment)
    return SavedReport(
        timestamped=reports_dir / f"{base_name}.{file_type}.{stamp}.json",
        latest=reports_dir / f"{base_name}.{file_type}.latest.json",
    )


def save_report(
    report: SiteLocatorReport,
    reports_dir: Path,
    *,
    file_type: str = "pathfinder",
    moment: datetime | None = None,
) -> SavedReport:
    """Write a timestamped archive copy and overwrite the ``latest`` copy."""
    reports_dir.mkdir(parents=True, exist_ok=True)
    paths = report_paths(extract_host_base(report.seed_url), file_type, reports_dir, moment)
    text = dumps_report(report)
    paths.timestamped.write_text(text, encoding="utf-8")
    paths.latest.write_text(text, encoding="utf-8")
    logger.info("Reports saved: %s, %s", paths.timestamped.name, paths.latest.name)
    return paths


def training_rows(report: SiteLocatorReport) -> list[list[str]]:
    rows: list[list[str]] = []
    for page in report.pages:
        for scored in page.scored:
            locator = scored.locator
            rows.append(
                [
                    page.url,
                    locator.tag_name,
                    locator.strategy,
                    locator.value,
                    str(locator.depth),
                    "true" if locator.is_unique else "false",
                    str(scored.total_score),
                    scored.grade,
                    str(scored.elo_rating),
                ]
            )
    return rows


def export_training_data(report: SiteLocatorReport, output_path: Path) -> Path:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(TRAINING_COLUMNS)
    writer.writerows(training_rows(report))
    output_path.write_text(buffer.getvalue(), encoding="utf-8")
    logger.info("Training data saved: %s", output_path)
    return output_path


def _percent(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(part * 100 / total + 0.5)


def _page_issues(page: PageLocatorReport) -> list[str]:
    issues: list[str] = []
    if page.issues.duplicate_ids:
        issues.append(f"Duplicate IDs: {', '.join(page.issues.duplicate_ids[:3])}")
    if page.issues.no_stable_locator > 0:
        issues.append(f"{page.issues.no_stable_locator} elements lack stable locators")
    if page.issues.deeply_nested > 0:
        issues.append(f"{page.issues.deeply_nested} elements deeply nested (>10 levels)")
    if page.issues.dynamic_classes:
        issues.append(f"Dynamic classes detected: {', '.join(page.issues.dynamic_classes[:3])}")
    return issues


def render_markdown_summary(report: SiteLocatorReport) -> str:
    aggregate = report.aggregate
    site_name = extract_host_base(report.seed_url).upper()
    grades = aggregate.overall_grade_distribution
    total = sum(grades.values())
    good = _percent(grades.get("A", 0) + grades.get("B", 0), total)
    bad = _percent(grades.get("D", 0) + grades.get("F", 0), total)

    lines = [
        f"# {site_name} - Pathfinder Analysis Report",
        "",
        f"**Generated:** {report.finished_at}",
        f"**Duration:** {format_duration(report.total_duration)}",
        f"**Version:** {report.version}",
        "",
        "---",
        "",
        "## Executive Summary",
        "",
        f"- **Pages Analyzed:** {aggregate.total_pages}",
        f"- **Total Locators:** {aggregate.total_locators}",
        f"- **Average Score:** {aggregate.average_stability_score}/100",
        f"- **Overall Grade:** {assign_grade(aggregate.average_stability_score)}",
    ]
    if report.failures:
        lines.append(f"- **Failed Pages:** {len(report.failures)}")
    lines += ["", "**Health Status:**"]
    if good >= 70:
        lines.append(f"- Status: GOOD - {good}% of locators are grade A/B")
    elif good >= 50:
        lines.append(f"- Status: FAIR - {good}% of locators are grade A/B, {bad}% need attention")
    else:
        lines.append(f"- Status: POOR - Only {good}% of locators are grade A/B, {bad}% are risky/failing")

    quality = {
        "A": "Excellent - Use these",
        "B": "Good - Safe to use",
        "C": "Acceptable - Monitor",
        "D": "Risky - Consider alternatives",
        "F": "Failing - Will break",
    }
    lines += ["", "---", "", "## Grade Distribution", "", "| Grade | Count | Percentage | Quality |", "|-------|-------|------------|----------|"]
    for grade, label in quality.items():
        count = grades.get(grade, 0)
        lines.append(f"| {grade} | {count} | {_percent(count, total)}% | {label} |")

    lines += ["", "---", "", "## Critical Issues", ""]
    lines += [f"- {issue}" for issue in report.global_recommendations.critical_issues] or ["No critical issues detected."]

    lines += ["", "---", "", "## Quick Wins", ""]
    lines += [f"- {win}" for win in report.global_recommendations.quick_wins] or ["No quick wins identified."]
    if report.global_recommendations.best_practices:
        lines += ["", "**Best Practices:**"]
        lines += [f"- {practice}" for practice in report.global_recommendations.best_practices]

    lines += ["", "---", "", "## Page-by-Page Analysis", "", "### Pages Needing Attention (Lowest Scores)", ""]
    ordered = sorted(report.pages, key=lambda page: page.score_stats.average)
    for index, page in enumerate(ordered[:3], start=1):
        stats = page.score_stats
        distribution = " ".join(f"{grade}:{stats.grade_distribution.get(grade, 0)}" for grade in quality)
        lines += [
            f"#### {index}. {page.url}",
            "",
            f"**Score:** {stats.average}/100 (Grade {assign_grade(stats.average)})",
            "",
            f"**Locators:** {len(page.locators)} total | {distribution}",
            "",
        ]
        issues = _page_issues(page)
        if issues:
            lines += ["**Issues:**", *[f"- {issue}" for issue in issues], ""]
        actions = [*page.recommendations.critical_issues[:3], *page.recommendations.improvements[:2]]
        if actions:
            lines += ["**Recommended Actions:**", *[f"- {action}" for action in actions], ""]

    if len(ordered) > 3:
        lines += ["### Top Performing Pages", ""]
        for index, page in enumerate(reversed(ordered[-3:]), start=1):
            average = page.score_stats.average
            lines.append(f"{index}. **{page.url}** - {average}/100 (Grade {assign_grade(average)})")
        lines.append("")

    if report.failures:
        lines += ["### Pages That Could Not Be Scanned", ""]
        lines += [f"- {failure.url}: {failure.error}" for failure in report.failures]
        lines.append("")

    lines += ["---", "", "## Locator Strategy Breakdown", "", "| Strategy | Count | Percentage |", "|----------|-------|------------|"]
    strategies = sorted(
        ((name, count) for name, count in aggregate.strategy_distribution.items() if count > 0),
        key=lambda row: row[1],
        reverse=True,
    )
    for name, count in strategies:
        lines.append(f"| {name} | {count} | {_percent(count, aggregate.total_locators)}% |")

    lines += ["", "---", "", "## Action Items", "", "### High Priority"]
    high: list[str] = []
    if aggregate.pages_with_duplicate_ids > 0:
        high.append(f"Fix duplicate IDs on {aggregate.pages_with_duplicate_ids} pages")
    if bad > 30:
        high.append(f"{bad}% of locators are grade D/F - systematic refactoring needed")
    lines += [f"1. {item}" for item in high] or ["No high-priority items."]

    lines += ["", "### Medium Priority"]
    medium: list[str] = []
    if aggregate.pages_without_test_ids > aggregate.total_pages / 2:
        medium.append(
            f"Add data-testid attributes ({aggregate.pages_without_test_ids}/{aggregate.total_pages} pages lack them)"
        )
    lines += [f"1. {item}" for item in medium] or ["No medium-priority items."]

    lines += ["", "---", "", "*Generated by Pathfinder - Autonomous Test Locator Intelligence System*", ""]
    return "\n".join(lines)


def write_markdown_summary(report_path: Path) -> Path:
    report = load_site_report(report_path)
    output_path = report_path.with_name(f"{report_path.stem}.SUMMARY.md")
    output_path.write_text(render_markdown_summary(report), encoding="utf-8")
    logger.info("Summary saved: %s", output_path)
    return output_path
