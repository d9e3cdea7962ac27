"""
Review Harvester API Router
===========================
GET /api/reviews?url=...&numReviews=...
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.config import Settings, get_settings
from services.review_service import ReviewService
from smart_scraper.cancellation import CancellationToken
from smart_scraper.errors import InvalidRequest, LocatorsNotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reviews"])

MSG_URL_REQUIRED = "URL parameter is required"
MSG_SELECTORS_NOT_FOUND = "Review selectors not found."
MSG_INTERNAL = "An error occurred while processing reviews."


# ========== MODELS ==========

class ReviewOut(BaseModel):
    title: str
    body: str
    rating: int
    reviewer: str
    date: str


class ReviewsResponse(BaseModel):
    reviews_numReviews: int
    reviews: List[ReviewOut]


# ========== DEPENDENCIES ==========

def get_review_service(request: Request, settings: Settings = Depends(get_settings)) -> ReviewService:
    return ReviewService(request.app.state.completion, settings)


async def watch_disconnect(request: Request, token: CancellationToken, interval: float = 1.0):
    while not token.cancelled:
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling scrape")
            token.cancel("client disconnected")
            return
        await asyncio.sleep(interval)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ========== ENDPOINTS ==========

@router.get("/reviews", response_model=ReviewsResponse)
async def get_reviews(
    request: Request,
    url: Optional[str] = None,
    numReviews: Optional[int] = None,
    settings: Settings = Depends(get_settings),
    service: ReviewService = Depends(get_review_service),
):
    """Harvests up to `numReviews` reviews from the product page at `url`."""
    if not url or not url.strip():
        return error_response(400, MSG_URL_REQUIRED)

    num_reviews = numReviews if numReviews is not None else settings.DEFAULT_NUM_REVIEWS
    token = CancellationToken()
    watcher = asyncio.create_task(watch_disconnect(request, token))
    try:
        reviews = await service.scrape(url, num_reviews, cancel_token=token)
    except InvalidRequest as e:
        return error_response(400, str(e))
    except LocatorsNotFound:
        logger.warning(f"No review selectors found for {url}")
        return error_response(404, MSG_SELECTORS_NOT_FOUND)
    except Exception:
        logger.exception("Exception occurred while processing reviews")
        return error_response(500, MSG_INTERNAL)
    finally:
        watcher.cancel()

    return ReviewsResponse(
        reviews_numReviews=len(reviews),
        reviews=[ReviewOut(**review.to_dict()) for review in reviews],
    )
