"""LLM client for OpenAI-compatible endpoints (OpenAI, Ollama, vLLM, etc.).

Both oracles talk to the hosted model through this client:
- chat completions for connection/cluster analysis
- embeddings for query/note similarity ranking

Requests are synchronous (requests) and run in a worker thread so the
event loop driving the layout keeps ticking while a call is outstanding.
"""

import asyncio
import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from notegraph.config import settings
from notegraph.oracle.output_parser import OutputParser

logger = logging.getLogger(__name__)


class LLMClient:
    """Async-wrapped client for OpenAI-compatible LLM APIs using requests."""

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        embedding_model: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_concurrent: int | None = None,
    ) -> None:
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.model = model or settings.llm_model
        self.embedding_model = embedding_model or settings.embedding_model
        self.api_key = api_key or settings.llm_api_key
        self.timeout = timeout or settings.llm_timeout
        self.max_concurrent = max_concurrent or settings.llm_max_concurrent

        self._semaphore = asyncio.Semaphore(self.max_concurrent)
        self._session: requests.Session | None = None

    def _get_session(self) -> requests.Session:
        """Get or create requests session with connection pooling."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            })
            adapter = HTTPAdapter(
                pool_connections=self.max_concurrent,
                pool_maxsize=self.max_concurrent * 2,
                max_retries=Retry(total=2, backoff_factor=0.5),
            )
            self._session.mount("http://", adapter)
            self._session.mount("https://", adapter)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON payload and return the decoded reply (runs in thread)."""
        response = self._get_session().post(
            f"{self.base_url}{path}",
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def _sync_chat(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
        **kwargs: Any,
    ) -> str:
        """Synchronous chat request (runs in thread)."""
        data = self._post(
            "/chat/completions",
            {
                "model": self.model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
                **kwargs,
            },
        )

        choices = data.get("choices", [])
        if not choices:
            logger.error(f"LLM returned empty choices: {data}")
            raise ValueError("LLM returned empty choices")

        message = choices[0].get("message", {})
        content = message.get("content")
        if content is None:
            # Some servers use "text" instead of "content"
            content = choices[0].get("text")
        if content is None:
            logger.error(f"LLM returned None content. Full response: {data}")
            raise ValueError(f"LLM returned None content: {data}")

        return OutputParser.strip_thinking(content)

    def _sync_embed(self, texts: list[str]) -> list[list[float]]:
        """Synchronous embeddings request (runs in thread)."""
        # Some models fail on empty input
        cleaned = [t if t.strip() else " " for t in texts]
        data = self._post(
            "/embeddings",
            {"model": self.embedding_model, "input": cleaned},
        )

        items = data.get("data")
        if not isinstance(items, list) or len(items) != len(texts):
            raise ValueError(
                f"Embedding count mismatch: expected {len(texts)}, got "
                f"{len(items) if isinstance(items, list) else 'none'}"
            )

        # OpenAI may return entries out of order; "index" is authoritative
        ordered = sorted(items, key=lambda item: item.get("index", 0))
        return [item["embedding"] for item in ordered]

    async def chat(
        self,
        messages: list[dict[str, str]],
        temperature: float | None = None,
        max_tokens: int = 4096,
        **kwargs: Any,
    ) -> str:
        """Send chat messages and get response."""
        if temperature is None:
            temperature = settings.llm_temperature
        async with self._semaphore:
            try:
                # Run sync request in thread pool to not block event loop
                return await asyncio.to_thread(
                    self._sync_chat,
                    messages,
                    temperature,
                    max_tokens,
                    **kwargs,
                )
            except requests.HTTPError as e:
                logger.error(f"LLM API error: {e.response.status_code} - {e.response.text}")
                raise
            except Exception as e:
                logger.error(f"LLM request failed: {e}")
                raise

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int = 4096,
        **kwargs: Any,
    ) -> str:
        """Generate a completion from the LLM."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        return await self.chat(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int = 4096,
        fallback: Any = None,
        **kwargs: Any,
    ) -> dict[str, Any] | list[Any] | Any:
        """Generate and parse a JSON response."""
        response = await self.generate(
            prompt=prompt,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
            **kwargs,
        )

        result = OutputParser.parse_json(response, fallback=fallback)

        if result is None and fallback is None:
            logger.warning(f"Could not parse LLM response as JSON: {response[:200]}")
            raise ValueError(f"Could not parse LLM response as JSON: {response[:200]}")

        return result

    async def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        return (await self.embed_batch([text]))[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts."""
        if not texts:
            return []
        async with self._semaphore:
            try:
                return await asyncio.to_thread(self._sync_embed, list(texts))
            except requests.HTTPError as e:
                logger.error(f"Embedding API error: {e.response.status_code} - {e.response.text}")
                raise
            except Exception as e:
                logger.error(f"Embedding request failed: {e}")
                raise


# Global client instance
_llm_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    """Get or create the global LLM client."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client


async def close_llm_client() -> None:
    """Close the global LLM client."""
    global _llm_client
    if _llm_client is not None:
        await _llm_client.close()
        _llm_client = None
