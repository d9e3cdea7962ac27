import asyncio
import logging
from typing import Optional

import google.generativeai as genai
import httpx

from core.config import Settings
from smart_scraper.errors import CompletionError

logger = logging.getLogger(__name__)


class GeminiCompletion:
    """
    Text completion backed by Google Gemini.
    The SDK is synchronous, so calls are delegated to a worker thread.
    """

    def __init__(self, api_key: Optional[str], model_name: str = "gemini-1.5-flash", timeout: float = 120.0):
        self.model_name = model_name
        self.timeout = timeout
        if api_key:
            genai.configure(api_key=api_key)
            self.model = genai.GenerativeModel(model_name)
        else:
            self.model = None
            logger.warning("GOOGLE_API_KEY missing, Gemini completions will fail.")

    async def generate(self, prompt: str, content: str) -> str:
        if not self.model:
            raise CompletionError("Gemini is not configured (GOOGLE_API_KEY missing)")

        logger.debug(f"Thinking... (Model: {self.model_name})")
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self.model.generate_content, f"{prompt}\n\n{content}"),
                timeout=self.timeout,
            )
            return response.text
        except asyncio.TimeoutError as e:
            raise CompletionError(f"Gemini timed out after {self.timeout}s") from e
        except Exception as e:
            logger.error(f"Gemini Error: {e}")
            raise CompletionError(str(e)) from e

    async def aclose(self):
        pass


class OllamaCompletion:
    """Text completion against a local Ollama server (non-streaming /api/generate)."""

    def __init__(self, url: str = "http://localhost:11434/api/generate", model: str = "mistral",
                 timeout: float = 120.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.model = model
        self.http_client = client or httpx.AsyncClient(timeout=timeout)

    async def generate(self, prompt: str, content: str) -> str:
        payload = {
            "model": self.model,
            "prompt": f"{prompt}\n\n{content}",
            "stream": False,
        }
        try:
            response = await self.http_client.post(self.url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise CompletionError(f"Ollama timed out: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Ollama API error: {e}")
            raise CompletionError(str(e)) from e

        text = data.get("response")
        if not isinstance(text, str):
            raise CompletionError("Ollama response has no 'response' text")
        return text

    async def aclose(self):
        await self.http_client.aclose()


def build_completion(settings: Settings):
    """Creates the completion client selected by LLM_PROVIDER. One per process."""
    provider = settings.LLM_PROVIDER.lower()
    if provider == "gemini":
        return GeminiCompletion(settings.GOOGLE_API_KEY, settings.GEMINI_MODEL, settings.LLM_TIMEOUT)
    if provider == "ollama":
        return OllamaCompletion(settings.OLLAMA_URL, settings.OLLAMA_MODEL, settings.LLM_TIMEOUT)
    raise ValueError(f"Unknown LLM_PROVIDER: {settings.LLM_PROVIDER}")
