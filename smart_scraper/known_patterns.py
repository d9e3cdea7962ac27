import logging
from typing import Dict, Optional, Tuple

from core.models import LocatorSet
from smart_scraper.errors import ScrapeCancelled

logger = logging.getLogger(__name__)

# Review widgets whose markup is stable across stores. Probed in insertion order.
KNOWN_PATTERNS: Dict[str, LocatorSet] = {
    "judge.me": LocatorSet(
        container=".jdgm-rev",
        reviewer_name=".jdgm-rev__author",
        rating=".jdgm-rev__rating",
        review_body=".jdgm-rev__body",
        date=".jdgm-rev__timestamp",
        next_page=".jdgm-paginate__next-page",
    ),
}


def register_pattern(system: str, locators: LocatorSet, registry: Optional[Dict[str, LocatorSet]] = None):
    """Adds a review widget to the registry (the shared KNOWN_PATTERNS unless one is given)."""
    if registry is None:
        registry = KNOWN_PATTERNS
    if system in registry:
        logger.info(f"Replacing known pattern for {system}")
    registry[system] = locators


async def match_known_pattern(page, registry: Dict[str, LocatorSet] = KNOWN_PATTERNS) -> Optional[Tuple[str, LocatorSet]]:
    """Returns the first registered (system, locators) whose container exists on the page."""
    for system, locators in registry.items():
        try:
            found = await page.exists(locators.container)
        except ScrapeCancelled:
            raise
        except Exception as e:
            logger.info(f"× Not using {system} review system ({e})")
            continue
        if found:
            logger.info(f"✓ Detected {system} review system")
            return system, locators
        logger.debug(f"× Not using {system} review system")
    return None
