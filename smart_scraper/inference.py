"""
Review Harvester - Locator Inference
====================================
Asks the generative model to propose review selectors for one markup chunk at
a time, strictly decodes its answer and confirms the proposal on the live page.
The first candidate (in the given order) that survives every check is adopted.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from core.ai.prompts import ReviewSelectorPrompt
from core.models import HtmlChunk, IncompleteLocators, LocatorSet
from smart_scraper.cancellation import CancellationToken
from smart_scraper.errors import (
    ChunkInferenceError,
    LocatorsNotFound,
    MalformedCompletion,
    SelectorsNotPresent,
    UnconfirmedLocators,
)

logger = logging.getLogger(__name__)


def find_json_object(text: str) -> Optional[str]:
    """Returns the first balanced {...} substring of `text`, honouring JSON string literals."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            ch = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:pos + 1]
        # unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def decode_completion(raw: str, chunk_index: int = -1) -> Dict[str, Any]:
    if not isinstance(raw, str):
        raise MalformedCompletion("Completion is not text", chunk_index)
    candidate = find_json_object(raw)
    if candidate is None:
        raise MalformedCompletion("No JSON found in response", chunk_index)
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise MalformedCompletion(f"Invalid JSON: {e.msg}", chunk_index) from e
    if not isinstance(payload, dict):
        raise MalformedCompletion("JSON payload is not an object", chunk_index)
    return payload


def proposal_from_payload(payload: Dict[str, Any], chunk_index: int = -1) -> LocatorSet:
    if not payload.get("found", True):
        raise SelectorsNotPresent("No review elements found in this chunk", chunk_index)

    selectors = payload.get("selectors", payload)
    if not isinstance(selectors, dict):
        raise SelectorsNotPresent("Selectors are not an object", chunk_index)
    try:
        return LocatorSet.from_completion(selectors)
    except IncompleteLocators as e:
        raise SelectorsNotPresent(f"Missing required selectors ({e})", chunk_index) from e


class LocatorInferenceEngine:
    """
    Turns candidate chunks into a confirmed LocatorSet.

    `completion` is any object with `async generate(prompt, content) -> str`.
    With `concurrency > 1` completions for a window of chunks are requested
    together, but confirmation still walks the window in chunk order so the
    adopted set never depends on which response arrived first.
    """

    def __init__(self, completion, concurrency: int = 1,
                 cancel_token: Optional[CancellationToken] = None,
                 prompt: Optional[str] = None):
        self.completion = completion
        self.concurrency = max(1, concurrency)
        self.cancel_token = cancel_token or CancellationToken()
        self.prompt = prompt or ReviewSelectorPrompt.extract_selectors()

    async def _complete(self, chunk: HtmlChunk) -> str:
        self.cancel_token.raise_if_cancelled()
        return await self.completion.generate(self.prompt, chunk.text)

    async def _confirm(self, chunk: HtmlChunk, raw: str, page) -> LocatorSet:
        payload = decode_completion(raw, chunk.index)
        locators = proposal_from_payload(payload, chunk.index)
        self.cancel_token.raise_if_cancelled()
        if not await page.exists(locators.container):
            raise UnconfirmedLocators(
                f"Container selector {locators.container!r} not found in page content", chunk.index
            )
        return locators

    async def infer(self, candidates: Sequence[HtmlChunk], page) -> LocatorSet:
        total = len(candidates)
        for start in range(0, total, self.concurrency):
            window: List[HtmlChunk] = list(candidates[start:start + self.concurrency])
            results = await asyncio.gather(
                *(self._complete(chunk) for chunk in window), return_exceptions=True
            )
            for offset, (chunk, raw) in enumerate(zip(window, results)):
                logger.info(f"Analyzing chunk {start + offset + 1} of {total}")
                if isinstance(raw, BaseException):
                    raise raw
                try:
                    locators = await self._confirm(chunk, raw, page)
                except ChunkInferenceError as e:
                    logger.info(f"× {e}, skipping chunk")
                    continue
                logger.info(f"✓ Found valid selectors: {locators.to_dict()}")
                return locators

        raise LocatorsNotFound()
