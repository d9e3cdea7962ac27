class ReviewScraperError(Exception):
    """Base class for review harvesting failures."""


class InvalidRequest(ReviewScraperError):
    pass


class LocatorsNotFound(ReviewScraperError):
    def __init__(self, message: str = "Could not find valid review selectors in any chunk"):
        super().__init__(message)


class ChunkInferenceError(ReviewScraperError):
    """A single candidate chunk did not yield usable locators. Never surfaced to callers."""

    def __init__(self, message: str, chunk_index: int = -1):
        self.chunk_index = chunk_index
        super().__init__(message)


class MalformedCompletion(ChunkInferenceError):
    pass


class SelectorsNotPresent(ChunkInferenceError):
    pass


class UnconfirmedLocators(ChunkInferenceError):
    pass


class ExtractionError(ReviewScraperError):
    pass


class NavigationError(ReviewScraperError):
    pass


class CompletionError(ReviewScraperError):
    """The generative model service failed or timed out."""


class ScrapeCancelled(ReviewScraperError):
    pass
