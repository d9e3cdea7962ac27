"""
Review Harvester - Pagination Controller
========================================
Drives one scrape session: find locators once, then extract / advance until
the target count is reached or the site runs out of pages.

    INIT -> INFERRING -> EXTRACTING <-> ADVANCING
                 |            |             |
               FAILED        DONE  <--------+
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence

from core.config import Settings
from core.models import LocatorSet, Session
from smart_scraper import extractor
from smart_scraper.cancellation import CancellationToken
from smart_scraper.errors import LocatorsNotFound, NavigationError
from smart_scraper.inference import LocatorInferenceEngine
from smart_scraper.known_patterns import KNOWN_PATTERNS, match_known_pattern
from smart_scraper.segmenter import candidate_chunks

logger = logging.getLogger(__name__)

COMMON_PAGINATION_SELECTORS = [
    'a[rel="next"]',
    '.pagination .next a',
    '.pagination .next',
    '.pagination-next',
    '[class*="pagination"] [class*="next"]',
    '[class*="pager"] [class*="next"]',
    'button[aria-label*="Next"]',
    'a[aria-label*="Next"]',
]

SCROLL_TO_BOTTOM_JS = """() => {
    const before = document.body.scrollHeight;
    window.scrollTo(0, document.body.scrollHeight);
    return before;
}"""

DOCUMENT_HEIGHT_JS = "() => document.body.scrollHeight"


class PaginationState(str, Enum):
    INIT = "init"
    INFERRING = "inferring"
    EXTRACTING = "extracting"
    ADVANCING = "advancing"
    DONE = "done"
    FAILED = "failed"


class PaginationStrategy:
    """One way of reaching the next batch of reviews. Returns True on success."""

    name = "base"

    async def advance(self, page, locators: LocatorSet, settle_ms: int) -> bool:
        raise NotImplementedError


class NextPageControlStrategy(PaginationStrategy):
    name = "next-page-control"

    async def advance(self, page, locators, settle_ms):
        if not await page.exists(locators.next_page):
            logger.info("No next page found, stopping.")
            return False
        logger.info("➡️ Loading next page...")
        await page.click(locators.next_page)
        await page.sleep(settle_ms)
        return True


class PaginationContainerStrategy(PaginationStrategy):
    name = "pagination-container"

    def __init__(self, selectors: Sequence[str] = tuple(COMMON_PAGINATION_SELECTORS)):
        self.selectors = list(selectors)

    async def advance(self, page, locators, settle_ms):
        for selector in self.selectors:
            if await page.is_visible(selector):
                logger.info(f"➡️ Clicking pagination control {selector}")
                await page.click(selector)
                await page.sleep(settle_ms)
                return True
        return False


class ScrollToBottomStrategy(PaginationStrategy):
    name = "scroll-to-bottom"

    async def advance(self, page, locators, settle_ms):
        before = await page.evaluate(SCROLL_TO_BOTTOM_JS)
        await page.sleep(settle_ms)
        after = await page.evaluate(DOCUMENT_HEIGHT_JS)
        grew = isinstance(before, (int, float)) and isinstance(after, (int, float)) and after > before
        if grew:
            logger.info("⬇️ Scrolling loaded more content")
        return grew


def default_strategies(alternate: bool = False) -> List[PaginationStrategy]:
    strategies: List[PaginationStrategy] = [NextPageControlStrategy()]
    if alternate:
        strategies += [PaginationContainerStrategy(), ScrollToBottomStrategy()]
    return strategies


class PaginationController:
    def __init__(self, page, inference: LocatorInferenceEngine, settings: Settings,
                 cancel_token: Optional[CancellationToken] = None,
                 strategies: Optional[Sequence[PaginationStrategy]] = None,
                 registry=None):
        self.page = page
        self.inference = inference
        self.settings = settings
        self.cancel_token = cancel_token or CancellationToken()
        self.strategies = list(strategies) if strategies is not None else default_strategies(settings.ALTERNATE_PAGINATION)
        self.registry = registry if registry is not None else KNOWN_PATTERNS
        self.state = PaginationState.INIT

    def _transition(self, state: PaginationState):
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state

    async def dismiss_popups(self):
        for selector in self.settings.POPUP_CLOSE_SELECTORS:
            if await self.page.exists(selector):
                logger.info(f"Popup found ({selector}), closing it...")
                try:
                    await self.page.click(selector)
                except NavigationError as e:
                    logger.info(f"Could not close popup: {e}")
                    continue
                await self.page.sleep(self.settings.POPUP_SETTLE_MS)

    async def resolve_locators(self, session: Session) -> LocatorSet:
        if session.locators is not None:
            logger.info("Reusing cached selectors")
            return session.locators

        known = await match_known_pattern(self.page, self.registry)
        if known:
            system, locators = known
            session.adopt(locators, system)
            return locators

        html = await self.page.content()
        candidates = candidate_chunks(html, self.settings.CHUNK_SIZE, self.settings.CHUNK_KEYWORD)
        logger.info(f"🔍 {len(candidates)} candidate chunks to analyze")
        locators = await self.inference.infer(candidates, self.page)
        session.adopt(locators, "inferred")
        logger.info(f"Extracted selectors: {locators.to_dict()}")
        return locators

    async def advance(self, locators: LocatorSet) -> bool:
        for strategy in self.strategies:
            self.cancel_token.raise_if_cancelled()
            try:
                if await strategy.advance(self.page, locators, self.settings.PAGE_SETTLE_MS):
                    return True
            except NavigationError as e:
                logger.info(f"× {strategy.name} failed: {e}")
        return False

    async def run(self, session: Session) -> Session:
        self.cancel_token.raise_if_cancelled()
        await self.dismiss_popups()
        await self.page.sleep(self.settings.INITIAL_SETTLE_MS)

        if not session.satisfied:
            self._transition(PaginationState.INFERRING)
            try:
                locators = await self.resolve_locators(session)
            except LocatorsNotFound:
                self._transition(PaginationState.FAILED)
                raise

            while True:
                self._transition(PaginationState.EXTRACTING)
                self.cancel_token.raise_if_cancelled()
                records = await extractor.extract(locators, self.page)
                session.add(records)
                session.pages_visited += 1
                logger.info(f"Page {session.pages_visited}: +{len(records)} reviews ({len(session.reviews)}/{session.target})")

                if session.satisfied:
                    logger.info("Collected required number of reviews.")
                    break
                if not records and self.settings.STOP_ON_EMPTY_ROUND:
                    logger.info("No new reviews on this page, stopping.")
                    break
                if session.pages_visited >= self.settings.MAX_PAGES:
                    logger.info(f"Reached page limit ({self.settings.MAX_PAGES}), stopping.")
                    break

                self._transition(PaginationState.ADVANCING)
                if not await self.advance(locators):
                    break

        self._transition(PaginationState.DONE)
        return session
