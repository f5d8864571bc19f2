from __future__ import annotations

import logging
import time

from .aggregator import build_page_scan, score_page_scan
from .browser_session import BrowserSession, open_session
from .collector import collect_elements
from .config import ScanConfig
from .dom_extractor import LocatorExtractor
from .models import ExtractedLocator, PageLocatorReport, PageLocatorScan
from .scoring import StabilityScorer
from .utils import elapsed_ms, now_iso

logger = logging.getLogger("pathfinder.scan")

PROGRESS_EVERY = 100


async def scan_session(
    session: BrowserSession,
    url: str,
    config: ScanConfig | None = None,
    *,
    started: float | None = None,
) -> PageLocatorScan:
    """Extract locators for every collected element of an already loaded page."""
    config = config or ScanConfig()
    started = time.monotonic() if started is None else started

    elements = await collect_elements(session)
    extractor = LocatorExtractor(session, timeout_ms=config.per_element_timeout_ms)

    locators: list[ExtractedLocator] = []
    for element in elements:
        extracted = await extractor.extract(element)
        if extracted is None:
            continue
        locators.append(extracted)
        if len(locators) % PROGRESS_EVERY == 0:
            logger.debug("Processed %s/%s elements...", len(locators), len(elements))

    if extractor.skipped:
        logger.info("  ! Skipped %s slow/problematic elements", extractor.skipped)

    return build_page_scan(
        url,
        locators,
        total_elements=len(elements),
        scanned_at=now_iso(),
        duration=elapsed_ms(started),
        skipped_elements=extractor.skipped,
    )


async def scan_page_locators(url: str, config: ScanConfig | None = None) -> PageLocatorScan:
    """Open an isolated browser session on ``url`` and scan it."""
    config = config or ScanConfig()
    started = time.monotonic()
    async with open_session(url, config) as session:
        return await scan_session(session, url, config, started=started)


async def scan_and_score(
    url: str,
    config: ScanConfig | None = None,
    scorer: StabilityScorer | None = None,
) -> PageLocatorReport:
    scan = await scan_page_locators(url, config)
    return score_page_scan(scan, scorer)
