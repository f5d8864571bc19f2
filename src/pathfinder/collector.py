from __future__ import annotations

import logging
from typing import Any

from .browser_session import BrowserSession
from .selector_rules import collector_selector

logger = logging.getLogger("pathfinder.collector")


async def collect_elements(session: BrowserSession) -> list[Any]:
    """Return interactive and semantic elements of the current document in document order."""
    elements = await session.query_all(collector_selector())
    logger.debug("Found %s elements", len(elements))
    return list(elements)
