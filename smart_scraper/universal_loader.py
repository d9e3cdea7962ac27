import logging
import random
from typing import Any, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from smart_scraper.cancellation import CancellationToken
from smart_scraper.errors import NavigationError

logger = logging.getLogger(__name__)

# User-Agent rotation list
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/115.0"
]

STEALTH_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined
    });
"""


class UniversalLoader:
    """
    Live browser session for one scrape request.

    Wraps a stealth-launched Chromium page and exposes the handful of
    operations the harvester needs (navigate, wait, read markup, query,
    click, evaluate, settle). Use as an async context manager so the browser
    is always released:

        async with UniversalLoader(headless=True) as page:
            await page.goto(url)
    """

    def __init__(self, headless: bool = True, navigation_timeout_ms: int = 60000,
                 cancel_token: Optional[CancellationToken] = None):
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self.cancel_token = cancel_token or CancellationToken()
        self.playwright = None
        self.browser = None
        self.context = None
        self.page = None

    async def __aenter__(self) -> "UniversalLoader":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def start(self):
        self.playwright = await async_playwright().start()
        try:
            # Launch browser with stealth-like args
            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
                args=["--disable-blink-features=AutomationControlled", "--no-sandbox"]
            )
            self.context = await self.browser.new_context(
                user_agent=random.choice(USER_AGENTS),
                viewport={"width": 1920, "height": 1080}
            )
            await self.context.add_init_script(STEALTH_SCRIPT)
            self.page = await self.context.new_page()
        except BaseException:
            logger.warning("Browser startup failed, releasing partial session")
            await self.close()
            raise
        logger.debug("Browser session started (headless=%s)", self.headless)

    async def close(self):
        try:
            if self.context:
                await self.context.close()
            if self.browser:
                await self.browser.close()
        finally:
            if self.playwright:
                await self.playwright.stop()
            self.page = None
            self.context = None
            self.browser = None
            self.playwright = None
            logger.debug("Browser session closed")

    def _page(self):
        self.cancel_token.raise_if_cancelled()
        if not self.page:
            raise RuntimeError("Browser not started. Call start() first.")
        return self.page

    async def goto(self, url: str):
        logger.info(f"🌍 Navigating to: {url}")
        await self._page().goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)

    async def wait_for(self, selector: str, timeout_ms: Optional[int] = None):
        await self._page().wait_for_selector(selector, timeout=timeout_ms or self.navigation_timeout_ms)

    async def content(self) -> str:
        return await self._page().content()

    async def exists(self, selector: str) -> bool:
        """True if the selector matches at least one element. Invalid selectors never match."""
        page = self._page()
        try:
            return await page.query_selector(selector) is not None
        except PlaywrightError as e:
            logger.debug(f"Selector probe failed for {selector!r}: {e}")
            return False

    async def is_visible(self, selector: str) -> bool:
        page = self._page()
        try:
            handle = await page.query_selector(selector)
            return bool(handle) and await handle.is_visible()
        except PlaywrightError:
            return False

    async def query_all(self, selector: str) -> List[Any]:
        return await self._page().query_selector_all(selector)

    async def click(self, selector: str):
        page = self._page()
        try:
            handle = await page.query_selector(selector)
        except PlaywrightError as e:
            raise NavigationError(f"Invalid selector {selector!r}: {e}") from e
        if not handle:
            raise NavigationError(f"No element matches {selector!r}")
        try:
            await handle.click()
        except PlaywrightError as e:
            raise NavigationError(f"Could not click {selector!r}: {e}") from e

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self._page().evaluate(script, arg)

    async def sleep(self, ms: int):
        await self.cancel_token.sleep(ms / 1000)
