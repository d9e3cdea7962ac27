from typing import Iterable, List

from core.models import HtmlChunk

DEFAULT_CHUNK_SIZE = 20000
DEFAULT_KEYWORD = "rating"


def segment(html: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[HtmlChunk]:
    """
    Splits markup into contiguous, non-overlapping chunks of at most `chunk_size`
    characters. Joining the chunk texts gives back the original string.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be a positive integer")
    return [
        HtmlChunk(index=n, text=html[start:start + chunk_size])
        for n, start in enumerate(range(0, len(html), chunk_size))
    ]


def filter_candidates(chunks: Iterable[HtmlChunk], keyword: str = DEFAULT_KEYWORD) -> List[HtmlChunk]:
    """Keeps chunks that mention the keyword (case-insensitive)."""
    needle = keyword.lower()
    return [chunk for chunk in chunks if needle in chunk.text.lower()]


def candidate_chunks(
    html: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    keyword: str = DEFAULT_KEYWORD,
) -> List[HtmlChunk]:
    # Review widgets tend to render near the end of the document, so try those first
    candidates = filter_candidates(segment(html, chunk_size), keyword)
    candidates.reverse()
    return candidates
