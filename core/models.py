"""
Review Harvester - Data Model
=============================
Locator sets, markup chunks, review records and the per-request session state.
"""

import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

RATING_MIN = 0
RATING_MAX = 5

# Wire names used in model completions -> LocatorSet field
LOCATOR_ALIASES = {
    "container": "container",
    "name": "reviewer_name",
    "reviewerName": "reviewer_name",
    "reviewer_name": "reviewer_name",
    "rating": "rating",
    "review": "review_body",
    "reviewBody": "review_body",
    "review_body": "review_body",
    "date": "date",
    "nextPageSelector": "next_page",
    "nextPage": "next_page",
    "next_page": "next_page",
}


class IncompleteLocators(ValueError):
    """Raised when a locator mapping is missing one of the six selectors."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"missing selectors: {', '.join(missing)}")


@dataclass(frozen=True)
class LocatorSet:
    """Six CSS selectors identifying a review widget on the live page."""

    container: str
    reviewer_name: str
    rating: str
    review_body: str
    date: str
    next_page: str

    def __post_init__(self):
        missing = [
            f.name for f in fields(self)
            if not isinstance(getattr(self, f.name), str) or not getattr(self, f.name).strip()
        ]
        if missing:
            raise IncompleteLocators(missing)

    @classmethod
    def from_completion(cls, data: Mapping[str, Any]) -> "LocatorSet":
        values: Dict[str, Any] = {}
        for key, value in data.items():
            target = LOCATOR_ALIASES.get(key)
            if target and target not in values:
                values[target] = value.strip() if isinstance(value, str) else value
        missing = [f.name for f in fields(cls) if f.name not in values]
        if missing:
            raise IncompleteLocators(missing)
        return cls(**values)

    def to_dict(self) -> Dict[str, str]:
        return {
            "container": self.container,
            "reviewerName": self.reviewer_name,
            "rating": self.rating,
            "reviewBody": self.review_body,
            "date": self.date,
            "nextPage": self.next_page,
        }


@dataclass(frozen=True)
class HtmlChunk:
    index: int
    text: str

    def __len__(self):
        return len(self.text)


def clamp_rating(value) -> int:
    if isinstance(value, float) and not math.isfinite(value):
        if math.isinf(value) and value > 0:
            return RATING_MAX
        return RATING_MIN
    try:
        rating = int(value)
    except (TypeError, ValueError, OverflowError):
        return RATING_MIN
    return max(RATING_MIN, min(RATING_MAX, rating))


@dataclass(frozen=True)
class ReviewRecord:
    reviewer_name: str
    rating: int
    body: str
    date: str
    title: Optional[str] = None

    def __post_init__(self):
        # frozen: bypass __setattr__ to normalise the rating once
        object.__setattr__(self, "rating", clamp_rating(self.rating))

    @property
    def is_complete(self) -> bool:
        return bool(self.title) and bool(self.body)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title or "",
            "body": self.body,
            "rating": self.rating,
            "reviewer": self.reviewer_name,
            "date": self.date,
        }


@dataclass
class Session:
    """Per-request scraping state. Owned by exactly one request."""

    url: str
    target: int
    reviews: List[ReviewRecord] = field(default_factory=list)
    locators: Optional[LocatorSet] = None
    locator_source: Optional[str] = None
    pages_visited: int = 0

    def adopt(self, locators: LocatorSet, source: str):
        if self.locators is not None:
            raise RuntimeError("Locators already confirmed for this session")
        self.locators = locators
        self.locator_source = source

    def add(self, records: List[ReviewRecord]):
        self.reviews.extend(records)

    @property
    def satisfied(self) -> bool:
        return len(self.reviews) >= self.target

    def final_reviews(self) -> List[ReviewRecord]:
        """Truncate to the requested count, then drop records lacking title or body."""
        limit = max(self.target, 0)
        return [r for r in self.reviews[:limit] if r.is_complete]
