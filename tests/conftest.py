"""
Shared fakes for the browser and completion capabilities.
"""
import pytest

from core.config import Settings
from smart_scraper.errors import NavigationError
from smart_scraper.extractor import EXTRACT_REVIEWS_JS
from smart_scraper.pagination import DOCUMENT_HEIGHT_JS, SCROLL_TO_BOTTOM_JS


def make_row(reviewer="Alice", body="Great product", date="2024-01-01",
             aria_label=None, data_rating=None, text=None, star_count=0, container_text=None,
             with_rating=True):
    rating = None
    if with_rating:
        rating = {
            "ariaLabel": aria_label,
            "dataRating": data_rating,
            "dataScore": None,
            "dataValue": None,
            "text": text,
            "starCount": star_count,
        }
    return {
        "ok": True,
        "reviewer": reviewer,
        "body": body,
        "date": date,
        "rating": rating,
        "containerText": container_text or f"{reviewer} {body} {date}",
    }


class FakePage:
    """
    In-memory stand-in for UniversalLoader.

    Each entry of `pages` is a dict with:
        selectors: selectors that resolve on that page
        rows:      rows returned by the review extraction script
        html:      markup returned by content()
        next:      selector that moves to the following page when clicked
        height:    document height reported to the scroll strategy
    """

    def __init__(self, pages):
        self.pages = pages
        self.index = 0
        self.url = None
        self.closed = False
        self.clicks = []
        self.sleeps = []
        self.probes = []
        self.extract_calls = []

    @property
    def current(self):
        return self.pages[self.index]

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def goto(self, url):
        self.url = url

    async def wait_for(self, selector, timeout_ms=None):
        pass

    async def content(self):
        return self.current.get("html", "")

    async def exists(self, selector):
        self.probes.append(selector)
        return selector in self.current.get("selectors", ())

    async def is_visible(self, selector):
        return selector in self.current.get("selectors", ())

    async def query_all(self, selector):
        return list(self.current.get("rows", ())) if await self.exists(selector) else []

    async def click(self, selector):
        if selector not in self.current.get("selectors", ()):
            raise NavigationError(f"No element matches {selector!r}")
        self.clicks.append(selector)
        if selector == self.current.get("next") and self.index + 1 < len(self.pages):
            self.index += 1

    async def evaluate(self, script, arg=None):
        if script == EXTRACT_REVIEWS_JS:
            self.extract_calls.append(arg)
            return list(self.current.get("rows", ()))
        if script == SCROLL_TO_BOTTOM_JS:
            height = self.current.get("height", 1000)
            if self.current.get("scroll_loads_more") and self.index + 1 < len(self.pages):
                self.index += 1
            return height
        if script == DOCUMENT_HEIGHT_JS:
            return self.current.get("height", 1000)
        raise AssertionError(f"unexpected script: {script[:40]}")

    async def sleep(self, ms):
        self.sleeps.append(ms)

    async def close(self):
        self.closed = True


class ScriptedCompletion:
    """Returns canned completions in order and records every call."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def generate(self, prompt, content):
        self.calls.append(content)
        if not self.responses:
            return '{"found": false}'
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def aclose(self):
        pass


JUDGE_ME_SELECTORS = {
    ".jdgm-rev", ".jdgm-rev__author", ".jdgm-rev__rating",
    ".jdgm-rev__body", ".jdgm-rev__timestamp",
}

FOUND_COMPLETION = """Sure! Here are the selectors:
{
  "found": true,
  "selectors": {
    "container": ".review",
    "name": ".review-author",
    "rating": ".review-stars",
    "review": ".review-text",
    "date": ".review-date",
    "nextPageSelector": ".pager-next"
  }
}"""


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        INITIAL_SETTLE_MS=0,
        PAGE_SETTLE_MS=0,
        POPUP_SETTLE_MS=0,
        CHUNK_SIZE=100,
        MAX_PAGES=10,
    )
