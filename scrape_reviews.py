"""
Review Harvester - Command Line
===============================
One-off scrape without the HTTP server:

    python scrape_reviews.py https://shop.example.com/products/mug -n 10 --json
"""

from dotenv import load_dotenv
load_dotenv()

import argparse
import asyncio
import json
import logging
import sys

from core.ai.engine import build_completion
from core.config import get_settings
from services.review_service import ReviewService
from smart_scraper.errors import LocatorsNotFound


async def run(url: str, num_reviews: int):
    settings = get_settings()
    completion = build_completion(settings)
    try:
        reviews = await ReviewService(completion, settings).scrape(url, num_reviews)
    finally:
        await completion.aclose()
    return reviews


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Extract customer reviews from a product page")
    parser.add_argument("url", help="Product page URL")
    parser.add_argument("-n", "--num-reviews", type=int, default=get_settings().DEFAULT_NUM_REVIEWS,
                        help="Number of reviews to collect (default: %(default)s)")
    parser.add_argument("--json", action="store_true", help="Print the reviews as JSON")
    args = parser.parse_args(argv)

    logging.basicConfig(level=get_settings().LOG_LEVEL)

    try:
        reviews = asyncio.run(run(args.url, args.num_reviews))
    except LocatorsNotFound:
        print("[ERROR] Review selectors not found.", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps({
            "reviews_numReviews": len(reviews),
            "reviews": [r.to_dict() for r in reviews],
        }, ensure_ascii=False, indent=2))
    else:
        for index, review in enumerate(reviews, start=1):
            print(f"[{index}] {review.reviewer_name} {'★' * review.rating} ({review.date})")
            print(f"    {review.body}")
        print(f"[DONE] {len(reviews)} reviews")
    return 0


if __name__ == "__main__":
    sys.exit(main())
