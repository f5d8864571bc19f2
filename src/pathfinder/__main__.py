from __future__ import annotations

import asyncio
import logging
from pathlib import Path
import sys
from typing import Callable, Optional

import typer

from .config import DEFAULT_PER_ELEMENT_TIMEOUT_MS, ScanConfig
from .exceptions import PathfinderError
from .log import configure_logging

logger = logging.getLogger("pathfinder.cli")

app = typer.Typer(
    name="pathfinder",
    help="Extract locators from web pages and score their stability.",
    add_completion=False,
)


@app.callback()
def _root(debug: bool = typer.Option(False, "--debug", help="Enable debug logging.")) -> None:
    configure_logging(debug or None)


@app.command()
def scan(
    url: str = typer.Argument(..., help="Absolute URL of the page to scan."),
    wait_after: int = typer.Option(0, "--wait-after", help="Milliseconds to wait after load for dynamic content."),
    timeout_ms: int = typer.Option(DEFAULT_PER_ELEMENT_TIMEOUT_MS, "--timeout-ms", help="Per-element extraction timeout (ms)."),
) -> None:
    """Scan a single page and print the scored page report as JSON."""
    from .orchestrate import normalize_url
    from .report_io import dumps_report
    from .scanner import scan_and_score

    def _run() -> None:
        config = ScanConfig(wait_after_ms=wait_after, per_element_timeout_ms=timeout_ms)
        report = asyncio.run(scan_and_score(normalize_url(url), config))
        typer.echo(dumps_report(report))
        logger.info("Scan complete: %s locators found", report.stats.total_locators)

    _guard(_run)


@app.command()
def analyze(
    crawl_file: Optional[Path] = typer.Argument(None, help="Crawl report; defaults to the newest *.crawl.latest.json."),
    max_urls: Optional[int] = typer.Option(None, "--max-urls", help="Analyze at most this many URLs."),
    wait_after: Optional[int] = typer.Option(None, "--wait-after", help="Override the crawl's waitAfter (ms)."),
    delay_ms: int = typer.Option(1000, "--delay-ms", help="Delay between pages (ms)."),
    timeout_ms: int = typer.Option(DEFAULT_PER_ELEMENT_TIMEOUT_MS, "--timeout-ms", help="Per-element extraction timeout (ms)."),
    reports_dir: Path = typer.Option(Path("reports"), "--reports-dir", help="Where crawl files and reports live."),
) -> None:
    """Analyze every page of a crawl and save the site report."""
    from .orchestrate import orchestrate
    from .report_io import save_report

    def _run() -> None:
        options = {
            "maxUrls": max_urls,
            "waitAfter": wait_after,
            "delayMs": delay_ms,
            "perElementTimeoutMs": timeout_ms,
            "reportsDir": reports_dir,
        }
        config = ScanConfig.from_mapping(options)
        report = asyncio.run(
            orchestrate(crawl_file, config, wait_after_override=wait_after is not None)
        )
        saved = save_report(report, config.reports_dir)
        typer.echo(f"{saved.timestamped}\n{saved.latest}")

    _guard(_run)


@app.command()
def summary(report_file: Path = typer.Argument(..., help="Site report JSON.")) -> None:
    """Write a Markdown summary next to a saved site report."""
    from .report_io import write_markdown_summary

    _guard(lambda: typer.echo(str(write_markdown_summary(report_file))))


@app.command("export-csv")
def export_csv(
    report_file: Path = typer.Argument(..., help="Site report JSON."),
    output: Path = typer.Argument(..., help="Destination CSV file."),
) -> None:
    """Export one row per scored locator for offline analysis."""
    from .report_io import export_training_data, load_site_report

    _guard(lambda: typer.echo(str(export_training_data(load_site_report(report_file), output))))


def _guard(action: Callable[[], None]) -> None:
    try:
        action()
    except PathfinderError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc


def main() -> int:
    if sys.version_info < (3, 11):
        raise SystemExit(
            "pathfinder requires Python 3.11+. "
            f"Current interpreter: {sys.executable} (Python {sys.version.split()[0]})"
        )
    app()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
