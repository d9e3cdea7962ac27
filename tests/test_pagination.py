"""
Tests for the pagination controller state machine
"""
import pytest
from unittest.mock import AsyncMock

from conftest import FOUND_COMPLETION, JUDGE_ME_SELECTORS, FakePage, ScriptedCompletion, make_row
from core.models import LocatorSet, Session
from smart_scraper.cancellation import CancellationToken
from smart_scraper.errors import LocatorsNotFound, NavigationError, ScrapeCancelled
from smart_scraper.inference import LocatorInferenceEngine
from smart_scraper.known_patterns import KNOWN_PATTERNS, match_known_pattern, register_pattern
from smart_scraper.pagination import (
    PaginationContainerStrategy,
    PaginationController,
    PaginationStrategy,
    PaginationState,
    ScrollToBottomStrategy,
    default_strategies,
)

INFERRED_SELECTORS = {".review", ".review-author", ".review-stars", ".review-text", ".review-date"}
REVIEW_HTML = "<html><body>" + "<div class='review'><span class='rating'>5</span></div>" * 3 + "</body></html>"


def rows(prefix, n):
    return [make_row(reviewer=f"{prefix}{i}", body=f"body {prefix}{i}", aria_label="4 stars") for i in range(n)]


def inferred_page(n_rows, next_page=True, **extra):
    selectors = set(INFERRED_SELECTORS)
    if next_page:
        selectors.add(".pager-next")
    page = {"selectors": selectors, "rows": rows("p", n_rows), "html": REVIEW_HTML,
            "next": ".pager-next" if next_page else None}
    page.update(extra)
    return page


def controller_for(page, completion, settings, **kwargs):
    return PaginationController(page, LocatorInferenceEngine(completion), settings, **kwargs)


@pytest.mark.asyncio
async def test_known_pattern_short_circuits_inference(settings):
    page = FakePage([{"selectors": JUDGE_ME_SELECTORS, "rows": rows("j", 3)}])
    completion = ScriptedCompletion([FOUND_COMPLETION])
    session = Session(url="https://shop.test/p", target=3)

    await controller_for(page, completion, settings).run(session)

    assert completion.calls == []
    assert session.locator_source == "judge.me"
    assert len(session.reviews) == 3


@pytest.mark.asyncio
async def test_known_pattern_probe_returns_none_when_absent():
    page = FakePage([{"selectors": {".something-else"}}])
    assert await match_known_pattern(page) is None


@pytest.mark.asyncio
async def test_locators_cached_across_pages(settings):
    pages = [inferred_page(2), inferred_page(2), inferred_page(2, next_page=False)]
    page = FakePage(pages)
    completion = ScriptedCompletion([FOUND_COMPLETION])
    controller = controller_for(page, completion, settings)
    session = Session(url="https://shop.test/p", target=100)

    await controller.run(session)

    assert len(completion.calls) == 1
    assert session.pages_visited == 3
    assert len(session.reviews) == 6
    assert page.clicks == [".pager-next", ".pager-next"]
    assert controller.state == PaginationState.DONE
    # same locator set sent to every extraction round
    assert len({tuple(sorted(call.items())) for call in page.extract_calls}) == 1


@pytest.mark.asyncio
async def test_stops_when_target_reached(settings):
    page = FakePage([inferred_page(4), inferred_page(4)])
    session = Session(url="https://shop.test/p", target=3)

    await controller_for(page, ScriptedCompletion([FOUND_COMPLETION]), settings).run(session)

    assert session.pages_visited == 1
    assert page.clicks == []
    assert len(session.reviews) == 4


@pytest.mark.asyncio
async def test_terminates_when_next_page_always_present(settings):
    # the next control never disappears: the page limit ends the loop
    page = FakePage([inferred_page(1)])
    session = Session(url="https://shop.test/p", target=1000)

    await controller_for(page, ScriptedCompletion([FOUND_COMPLETION]), settings).run(session)

    assert session.pages_visited == settings.MAX_PAGES


@pytest.mark.asyncio
async def test_stop_on_empty_round(settings):
    settings.STOP_ON_EMPTY_ROUND = True
    page = FakePage([inferred_page(2), inferred_page(0), inferred_page(2)])
    session = Session(url="https://shop.test/p", target=100)

    await controller_for(page, ScriptedCompletion([FOUND_COMPLETION]), settings).run(session)

    assert session.pages_visited == 2
    assert len(session.reviews) == 2


@pytest.mark.asyncio
async def test_inference_failure_moves_to_failed(settings):
    page = FakePage([inferred_page(2)])
    controller = controller_for(page, ScriptedCompletion(['{"found": false}'] * 5), settings)

    with pytest.raises(LocatorsNotFound):
        await controller.run(Session(url="https://shop.test/p", target=5))
    assert controller.state == PaginationState.FAILED


@pytest.mark.asyncio
async def test_non_positive_target_skips_extraction(settings):
    page = FakePage([inferred_page(2)])
    completion = ScriptedCompletion([FOUND_COMPLETION])
    session = Session(url="https://shop.test/p", target=0)

    await controller_for(page, completion, settings).run(session)

    assert completion.calls == []
    assert page.extract_calls == []
    assert session.reviews == []


@pytest.mark.asyncio
async def test_popup_is_dismissed_before_inference(settings):
    first = inferred_page(2, next_page=False)
    first["selectors"].add(".store-selection-popup--close")
    page = FakePage([first])
    session = Session(url="https://shop.test/p", target=2)

    await controller_for(page, ScriptedCompletion([FOUND_COMPLETION]), settings).run(session)

    assert page.clicks == [".store-selection-popup--close"]


@pytest.mark.asyncio
async def test_cancelled_token_aborts_run(settings):
    token = CancellationToken()
    token.cancel("client disconnected")
    page = FakePage([inferred_page(2)])

    with pytest.raises(ScrapeCancelled):
        await controller_for(page, ScriptedCompletion([]), settings, cancel_token=token).run(
            Session(url="https://shop.test/p", target=5)
        )


def test_default_strategies_respect_alternate_flag():
    assert [s.name for s in default_strategies()] == ["next-page-control"]
    assert [s.name for s in default_strategies(alternate=True)] == [
        "next-page-control", "pagination-container", "scroll-to-bottom"
    ]


@pytest.mark.asyncio
async def test_alternate_pagination_falls_back_to_common_selectors(settings):
    settings.ALTERNATE_PAGINATION = True
    first = inferred_page(1, next_page=False)
    first["selectors"].add('a[rel="next"]')
    first["next"] = 'a[rel="next"]'
    page = FakePage([first, inferred_page(1, next_page=False)])
    session = Session(url="https://shop.test/p", target=100)

    await controller_for(page, ScriptedCompletion([FOUND_COMPLETION]), settings).run(session)

    assert page.clicks == ['a[rel="next"]']
    assert session.pages_visited == 2


@pytest.mark.asyncio
async def test_scroll_strategy_reports_growth():
    locators = LocatorSet(".r", ".a", ".s", ".t", ".d", ".n")
    page = FakePage([{"height": 1000, "scroll_loads_more": True}, {"height": 2400}])
    assert await ScrollToBottomStrategy().advance(page, locators, 0) is True

    flat = FakePage([{"height": 1000}])
    assert await ScrollToBottomStrategy().advance(flat, locators, 0) is False


@pytest.mark.asyncio
async def test_pagination_container_strategy_without_controls():
    locators = LocatorSet(".r", ".a", ".s", ".t", ".d", ".n")
    page = FakePage([{"selectors": set()}])
    page.click = AsyncMock()

    assert await PaginationContainerStrategy().advance(page, locators, 0) is False
    page.click.assert_not_called()


class BrokenStrategy(PaginationStrategy):
    name = "broken"

    async def advance(self, page, locators, settle_ms):
        raise NavigationError("next button detached")


class AlwaysAdvances(PaginationStrategy):
    name = "always"

    def __init__(self):
        self.calls = 0

    async def advance(self, page, locators, settle_ms):
        self.calls += 1
        return True


@pytest.mark.asyncio
async def test_advance_moves_past_failing_strategy(settings):
    locators = LocatorSet(".r", ".a", ".s", ".t", ".d", ".n")
    fallback = AlwaysAdvances()
    controller = controller_for(FakePage([{}]), ScriptedCompletion([]), settings,
                                strategies=[BrokenStrategy(), fallback])

    assert await controller.advance(locators) is True
    assert fallback.calls == 1


@pytest.mark.asyncio
async def test_advance_reports_false_when_every_strategy_fails(settings):
    locators = LocatorSet(".r", ".a", ".s", ".t", ".d", ".n")
    controller = controller_for(FakePage([{}]), ScriptedCompletion([]), settings,
                                strategies=[BrokenStrategy()])

    assert await controller.advance(locators) is False


@pytest.mark.asyncio
async def test_dismiss_popups_continues_after_failed_click(settings):
    settings.POPUP_CLOSE_SELECTORS = [".cookie-banner--close", ".store-popup--close"]
    page = FakePage([{"selectors": set(settings.POPUP_CLOSE_SELECTORS)}])
    page.click = AsyncMock(side_effect=[NavigationError("not clickable"), None])

    await controller_for(page, ScriptedCompletion([]), settings).dismiss_popups()

    assert [c.args[0] for c in page.click.await_args_list] == settings.POPUP_CLOSE_SELECTORS
    assert page.sleeps == [settings.POPUP_SETTLE_MS]


def test_register_pattern_into_given_registry():
    registry = {}
    locators = LocatorSet(".yotpo-review", ".yotpo-user-name", ".yotpo-stars",
                          ".content-review", ".yotpo-review-date", ".yotpo-pager .next")

    register_pattern("yotpo", locators, registry)

    assert registry == {"yotpo": locators}
    assert "yotpo" not in KNOWN_PATTERNS


@pytest.mark.asyncio
async def test_registered_pattern_is_used_by_controller(settings):
    registry = dict(KNOWN_PATTERNS)
    register_pattern("yotpo", LocatorSet(".yotpo-review", ".yotpo-user-name", ".yotpo-stars",
                                         ".content-review", ".yotpo-review-date", ".yotpo-next"), registry)
    page = FakePage([{"selectors": {".yotpo-review"}, "rows": rows("y", 2)}])
    completion = ScriptedCompletion([FOUND_COMPLETION])
    session = Session(url="https://shop.test/p", target=2)

    await controller_for(page, completion, settings, registry=registry).run(session)

    assert session.locator_source == "yotpo"
    assert completion.calls == []
    assert len(session.reviews) == 2
