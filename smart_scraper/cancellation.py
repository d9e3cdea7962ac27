import asyncio
from typing import Optional

from smart_scraper.errors import ScrapeCancelled


class CancellationToken:
    """Cooperative abort signal checked at every browser and model suspension point."""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled"):
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise ScrapeCancelled(self.reason or "cancelled")

    async def sleep(self, seconds: float):
        """Sleeps for `seconds` but wakes up immediately on cancellation."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()
