import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from core.models import LocatorSet, ReviewRecord, clamp_rating
from smart_scraper.errors import ExtractionError

logger = logging.getLogger(__name__)

# Runs in the page. One row per container; a container that throws yields {ok: false}.
EXTRACT_REVIEWS_JS = """(selectors) => {
    const text = (el) => (el && el.textContent ? el.textContent.trim() : '');
    const FILLED_STARS = [
        '.jdgm--on',
        '[class*="star-full"]', '[class*="star--full"]',
        '[class*="star-filled"]', '[class*="star--filled"]',
        '[class*="star-on"]', '[class*="star--on"]',
        '.fa-star:not(.fa-star-o):not(.fa-star-half-o)'
    ].join(', ');

    const containers = Array.from(document.querySelectorAll(selectors.container));
    return containers.map((review) => {
        try {
            const nameEl = review.querySelector(selectors.reviewerName);
            const ratingEl = review.querySelector(selectors.rating);
            const bodyEl = review.querySelector(selectors.reviewBody);
            const dateEl = review.querySelector(selectors.date);

            let rating = null;
            if (ratingEl) {
                rating = {
                    ariaLabel: ratingEl.getAttribute('aria-label'),
                    dataRating: ratingEl.getAttribute('data-rating'),
                    dataScore: ratingEl.getAttribute('data-score'),
                    dataValue: ratingEl.getAttribute('data-value'),
                    text: ratingEl.textContent,
                    starCount: ratingEl.querySelectorAll(FILLED_STARS).length
                };
            }

            return {
                ok: true,
                reviewer: text(nameEl),
                body: text(bodyEl),
                date: text(dateEl),
                rating: rating,
                containerText: review.textContent || ''
            };
        } catch (error) {
            return { ok: false, error: String(error) };
        }
    });
}"""

STAR_LABEL_RE = re.compile(r"(\d+)\s*star", re.IGNORECASE)
LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")
DIGITS_RE = re.compile(r"(\d+)")
OUT_OF_FIVE_RE = re.compile(r"(?<![\d/.,])(\d+(?:[.,]\d+)?)\s*/\s*5(?![\d./])")


@dataclass(frozen=True)
class RatingSignals:
    """Raw rating evidence gathered from one review container."""

    aria_label: Optional[str] = None
    data_rating: Optional[str] = None
    data_score: Optional[str] = None
    data_value: Optional[str] = None
    text: Optional[str] = None
    star_count: int = 0
    container_text: Optional[str] = None

    @classmethod
    def from_row(cls, rating: Optional[Dict[str, Any]], container_text: Optional[str] = None) -> "RatingSignals":
        rating = rating or {}
        return cls(
            aria_label=rating.get("ariaLabel"),
            data_rating=rating.get("dataRating"),
            data_score=rating.get("dataScore"),
            data_value=rating.get("dataValue"),
            text=rating.get("text"),
            star_count=int(rating.get("starCount") or 0),
            container_text=container_text,
        )


def rating_from_aria_label(signals: RatingSignals) -> Optional[int]:
    if not signals.aria_label:
        return None
    match = STAR_LABEL_RE.search(signals.aria_label)
    return int(match.group(1)) if match else None


def rating_from_data_attribute(signals: RatingSignals) -> Optional[int]:
    for value in (signals.data_rating, signals.data_score, signals.data_value):
        if value:
            match = LEADING_INT_RE.match(value)
            if match:
                return int(match.group(1))
    return None


def rating_from_text(signals: RatingSignals) -> Optional[int]:
    if not signals.text:
        return None
    match = DIGITS_RE.search(signals.text)
    return int(match.group(1)) if match else None


def rating_from_star_count(signals: RatingSignals) -> Optional[int]:
    return signals.star_count if signals.star_count > 0 else None


def rating_from_out_of_five(signals: RatingSignals) -> Optional[int]:
    if not signals.container_text:
        return None
    match = OUT_OF_FIVE_RE.search(signals.container_text)
    if not match:
        return None
    value = float(match.group(1).replace(",", "."))
    return int(math.floor(value + 0.5))


RATING_STRATEGIES: Sequence[Callable[[RatingSignals], Optional[int]]] = (
    rating_from_aria_label,
    rating_from_data_attribute,
    rating_from_text,
    rating_from_star_count,
    rating_from_out_of_five,
)


def parse_rating(signals: RatingSignals, strategies=RATING_STRATEGIES) -> int:
    """First strategy that yields a value wins. Always returns an int in [0, 5]."""
    for strategy in strategies:
        value = strategy(signals)
        if value is not None:
            return clamp_rating(value)
    return 0


def build_record(row: Any) -> ReviewRecord:
    if not isinstance(row, dict):
        raise ExtractionError(f"Unexpected row type: {type(row).__name__}")
    if not row.get("ok"):
        raise ExtractionError(row.get("error") or "container extraction failed")

    reviewer = (row.get("reviewer") or "").strip()
    signals = RatingSignals.from_row(row.get("rating"), row.get("containerText"))
    return ReviewRecord(
        reviewer_name=reviewer,
        rating=parse_rating(signals),
        body=(row.get("body") or "").strip(),
        date=(row.get("date") or "").strip(),
        title=reviewer,
    )


async def extract(locators: LocatorSet, page) -> List[ReviewRecord]:
    """Builds one ReviewRecord per container on the current page, in DOM order."""
    rows = await page.evaluate(EXTRACT_REVIEWS_JS, locators.to_dict()) or []
    logger.info(f"Found {len(rows)} review elements")

    records = []
    for position, row in enumerate(rows):
        try:
            records.append(build_record(row))
        except (ExtractionError, TypeError, ValueError) as e:
            logger.warning(f"× Error extracting review #{position + 1}: {e}")
    return records
