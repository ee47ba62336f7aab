"""Batching, timeout and rate-limit retry around an embedding provider.

The provider adapter only translates one API call; this service decides
how many calls to make and what to do when one fails:

- inputs are split into batches of ``batch_size`` texts;
- every call is bounded by ``timeout_seconds`` (a timeout is an
  :class:`EmbeddingServiceError`);
- :class:`RateLimitError` is retried with exponential backoff
  (``base * 2**(attempt - 1)``, capped at ``backoff_max``) for at most
  ``max_attempts`` attempts per batch, after which it escalates to
  :class:`EmbeddingServiceError`;
- every other error propagates immediately.

Output order always equals input order.
"""

from __future__ import annotations

import asyncio

import structlog

from chatbot_kb.interfaces.embedding_provider import IEmbeddingProvider
from chatbot_kb.utils.errors import EmbeddingServiceError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


class EmbeddingGenerator:
    """Turns chunk texts into vectors through an :class:`IEmbeddingProvider`."""

    def __init__(
        self,
        provider: IEmbeddingProvider,
        batch_size: int = 512,
        timeout_seconds: float = 30.0,
        max_attempts: int = 4,
        backoff_base: float = 1.0,
        backoff_max: float = 20.0,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if max_attempts <= 0:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")
        self._provider = provider
        self._batch_size = batch_size
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max

    def get_dimension(self) -> int:
        """Length of every vector :meth:`generate` returns."""
        return self._provider.get_dimension()

    async def generate(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per text, in the same order.

        Raises
        ------
        EmbeddingServiceError
            On any non-retryable failure, a timeout, or exhausted
            rate-limit retries.
        """
        if not texts:
            return []

        vectors: list[list[float]] = []
        for start in range(0, len(texts), self._batch_size):
            batch = texts[start : start + self._batch_size]
            batch_vectors = await self._embed_batch(batch, batch_index=start // self._batch_size)
            if len(batch_vectors) != len(batch):
                raise EmbeddingServiceError(
                    message=(
                        f"Embedding provider returned {len(batch_vectors)} vectors "
                        f"for {len(batch)} texts"
                    ),
                    provider_name=self._provider.get_provider_name(),
                )
            vectors.extend(batch_vectors)
        return vectors

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after the *attempt*-th (1-based) rate-limited call."""
        return min(self._backoff_base * (2 ** (attempt - 1)), self._backoff_max)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _embed_batch(self, batch: list[str], batch_index: int) -> list[list[float]]:
        provider_name = self._provider.get_provider_name()

        for attempt in range(1, self._max_attempts + 1):
            try:
                return await asyncio.wait_for(self._provider.embed(batch), timeout=self._timeout)
            except RateLimitError as exc:
                if attempt >= self._max_attempts:
                    logger.error(
                        "embedding_rate_limit_exhausted",
                        provider=provider_name,
                        batch_index=batch_index,
                        attempts=attempt,
                    )
                    raise EmbeddingServiceError(
                        message=f"Rate limited after {attempt} attempts: {exc.message}",
                        provider_name=provider_name,
                    ) from exc

                delay = self.backoff_delay(attempt)
                logger.warning(
                    "embedding_rate_limited",
                    provider=provider_name,
                    batch_index=batch_index,
                    attempt=attempt,
                    retry_in=delay,
                )
                await asyncio.sleep(delay)
            except asyncio.TimeoutError as exc:
                logger.error(
                    "embedding_timeout",
                    provider=provider_name,
                    batch_index=batch_index,
                    timeout_seconds=self._timeout,
                )
                raise EmbeddingServiceError(
                    message=f"Embedding call timed out after {self._timeout}s",
                    provider_name=provider_name,
                ) from exc

        # Unreachable: the loop either returns or raises.
        raise EmbeddingServiceError(provider_name=provider_name)
