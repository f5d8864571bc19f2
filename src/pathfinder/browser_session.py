from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Protocol, runtime_checkable

from .config import ScanConfig
from .exceptions import ConfigurationError, NavigationError

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger("pathfinder.browser")

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
VIEWPORT = {"width": 1366, "height": 900}

COOKIE_BANNER_SELECTORS = (
    'button:has-text("Accept")',
    'button:has-text("Agree")',
    'button:has-text("OK")',
    'button:has-text("Accept all")',
    'button:has-text("I agree")',
    'button:has-text("Allow all")',
    '[aria-label*="cookie" i] button',
    '[aria-label*="accept" i] button',
    '[id*="cookie" i] button',
    '[class*="cookie" i] button',
    '[class*="consent" i] button',
)

_MISSING_BROWSER_ERROR_HINTS = (
    "executable doesn't exist",
    "executable does not exist",
    "download new browsers",
    "playwright install",
    "could not find browser",
    "failed to launch chromium because executable",
)


@runtime_checkable
class BrowserSession(Protocol):
    """Read-only view of one loaded document.

    Element handles returned by ``query_all`` are opaque; they are only ever
    passed back into ``evaluate`` on the same session.
    """

    async def query_all(self, selector: str) -> list[Any]: ...

    async def count_matches(self, selector: str) -> int: ...

    async def evaluate(self, element: Any, script: str, arg: Any = None) -> Any: ...


class PlaywrightSession:
    def __init__(self, page: Page) -> None:
        self.page = page

    async def query_all(self, selector: str) -> list[Any]:
        return await self.page.locator(selector).all()

    async def count_matches(self, selector: str) -> int:
        return await self.page.locator(selector).count()

    async def evaluate(self, element: Any, script: str, arg: Any = None) -> Any:
        return await element.evaluate(script, arg)


def is_missing_browser_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return any(hint in message for hint in _MISSING_BROWSER_ERROR_HINTS)


async def retry_async(
    operation: Callable[[], Awaitable[Any]],
    attempts: int,
    backoff_ms: int,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """Run ``operation`` up to ``attempts`` times, waiting ``backoff_ms * attempt`` between tries."""
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            last_error = exc
            logger.debug("Attempt %s/%s failed: %s", attempt, attempts, exc)
            if attempt < attempts:
                await sleep(backoff_ms * attempt / 1000)
    assert last_error is not None
    raise last_error


async def navigate(page: Page, url: str, config: ScanConfig) -> None:
    async def _goto() -> None:
        await page.goto(url, wait_until="domcontentloaded", timeout=config.navigation_timeout_ms)

    try:
        await retry_async(_goto, config.navigation_attempts, config.navigation_backoff_ms)
    except Exception as exc:
        raise NavigationError(url, config.navigation_attempts, str(exc)) from exc


async def dismiss_cookie_banner(page: Page) -> bool:
    for selector in COOKIE_BANNER_SELECTORS:
        try:
            button = page.locator(selector).first
            if await button.is_visible(timeout=2000):
                await button.click(timeout=3000)
                await page.wait_for_timeout(500)
                logger.info("  > Cookie banner handled")
                return True
        except Exception as exc:
            logger.debug("Cookie selector %s not usable: %s", selector, exc)
    return False


async def settle(page: Page, config: ScanConfig) -> None:
    await page.wait_for_timeout(1500)
    await dismiss_cookie_banner(page)
    await page.wait_for_timeout(500)
    if config.wait_after_ms > 0:
        logger.info("  > Waiting %sms for dynamic content...", config.wait_after_ms)
        await page.wait_for_timeout(config.wait_after_ms)


@asynccontextmanager
async def open_session(url: str, config: ScanConfig) -> AsyncIterator[PlaywrightSession]:
    """Launch an isolated browser, load ``url`` and yield a session over it."""
    from playwright.async_api import async_playwright

    async with async_playwright() as playwright:
        try:
            browser = await playwright.chromium.launch(headless=config.headless)
        except Exception as exc:
            if is_missing_browser_error(exc):
                raise ConfigurationError(
                    "Chromium is not installed for Playwright. Run `playwright install chromium`."
                ) from exc
            raise
        try:
            page = await browser.new_page(user_agent=USER_AGENT, viewport=VIEWPORT)
            page.set_default_timeout(config.navigation_timeout_ms)
            logger.debug("Navigating to %s...", url)
            await navigate(page, url, config)
            await settle(page, config)
            yield PlaywrightSession(page)
        finally:
            await browser.close()
