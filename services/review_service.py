"""
Review Harvester - Review Service
=================================
Runs one scrape session per request:
- opens a browser session (always closed on exit)
- drives the pagination controller
- truncates and filters the harvested records
"""

import logging
from typing import Callable, List, Optional

from core.config import Settings
from core.models import ReviewRecord, Session
from smart_scraper.cancellation import CancellationToken
from smart_scraper.errors import InvalidRequest
from smart_scraper.inference import LocatorInferenceEngine
from smart_scraper.pagination import PaginationController
from smart_scraper.universal_loader import UniversalLoader

logger = logging.getLogger(__name__)


def validate_review(review: ReviewRecord) -> dict:
    issues = [
        issue for issue, missing in (
            ("missing reviewer name", not review.reviewer_name),
            ("missing review text", not review.body),
            ("missing date", not review.date),
            ("missing rating", review.rating is None),
        ) if missing
    ]
    return {
        "isValid": bool(review.reviewer_name and review.body and review.date),
        "issues": issues,
    }


def log_review_details(reviews: List[ReviewRecord]):
    """Prints a human readable summary of the harvested reviews."""
    logger.info("=== Review Details ===")
    for index, review in enumerate(reviews, start=1):
        logger.info(f"Review #{index}")
        logger.info(f"Reviewer: {review.reviewer_name}")
        logger.info(f"Rating: {'⭐' * review.rating}")
        logger.info(f"Date: {review.date}")
        logger.info(f"Review: {review.body}")
        issues = validate_review(review)["issues"]
        if issues:
            logger.info(f"Issues: {', '.join(issues)}")
        logger.info("-------------------")
    logger.info(f"Total Reviews: {len(reviews)}")


class ReviewService:
    def __init__(self, completion, settings: Settings, loader_factory: Optional[Callable] = None):
        self.completion = completion
        self.settings = settings
        self.loader_factory = loader_factory or self._default_loader

    def _default_loader(self, cancel_token: CancellationToken) -> UniversalLoader:
        return UniversalLoader(
            headless=self.settings.HEADLESS,
            navigation_timeout_ms=self.settings.NAVIGATION_TIMEOUT_MS,
            cancel_token=cancel_token,
        )

    async def scrape(self, url: str, num_reviews: int,
                     cancel_token: Optional[CancellationToken] = None) -> List[ReviewRecord]:
        if not url or not url.strip():
            raise InvalidRequest("URL parameter is required")
        url = url.strip()
        cancel_token = cancel_token or CancellationToken()
        session = Session(url=url, target=num_reviews)
        logger.info(f"Scraping reviews from {url}, aiming for {num_reviews} reviews.")

        async with self.loader_factory(cancel_token) as page:
            await page.goto(url)
            await page.wait_for("body")

            inference = LocatorInferenceEngine(
                self.completion,
                concurrency=self.settings.INFERENCE_CONCURRENCY,
                cancel_token=cancel_token,
            )
            controller = PaginationController(page, inference, self.settings, cancel_token=cancel_token)
            await controller.run(session)

        reviews = session.final_reviews()
        log_review_details(reviews)
        return reviews
