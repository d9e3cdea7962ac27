from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION_ORIGINS = [
    "https://your-frontend-domain.vercel.app",
    "https://review-scraper-frontend.vercel.app",
]
DEVELOPMENT_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "Review Harvester"
    ENVIRONMENT: str = "development"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # CORS (None -> derived from ENVIRONMENT)
    ALLOWED_ORIGINS: Optional[List[str]] = None

    # Generative model
    LLM_PROVIDER: str = "ollama"  # ollama | gemini
    GOOGLE_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    OLLAMA_URL: str = "http://localhost:11434/api/generate"
    OLLAMA_MODEL: str = "mistral"
    LLM_TIMEOUT: float = 120.0

    # Locator inference
    CHUNK_SIZE: int = 20000
    CHUNK_KEYWORD: str = "rating"
    INFERENCE_CONCURRENCY: int = 1

    # Browser
    HEADLESS: bool = True
    NAVIGATION_TIMEOUT_MS: int = 60000
    INITIAL_SETTLE_MS: int = 1000
    PAGE_SETTLE_MS: int = 3000
    POPUP_SETTLE_MS: int = 1000
    POPUP_CLOSE_SELECTORS: List[str] = [".store-selection-popup--close"]

    # Pagination
    ALTERNATE_PAGINATION: bool = False
    STOP_ON_EMPTY_ROUND: bool = False
    MAX_PAGES: int = 50
    DEFAULT_NUM_REVIEWS: int = 5

    def cors_origins(self) -> List[str]:
        if self.ALLOWED_ORIGINS is not None:
            return self.ALLOWED_ORIGINS
        if self.ENVIRONMENT == "production":
            return PRODUCTION_ORIGINS
        return DEVELOPMENT_ORIGINS


@lru_cache
def get_settings() -> Settings:
    return Settings()

