"""Chunk embeddings through the OpenAI embeddings endpoint.

One instance issues the calls for every ingestion run in the process.  Setting
``OPENAI_BASE_URL`` (and usually ``OPENAI_EMBEDDING_MODEL``) points it at any
server that speaks the same API, such as a self-hosted gateway.

SDK exceptions are translated into the application hierarchy here, so
nothing above this module needs to import ``openai``:

    openai.RateLimitError                 -> RateLimitError (retryable)
    openai.APITimeoutError                -> EmbeddingServiceError
    openai.APIConnectionError             -> EmbeddingServiceError
    openai.AuthenticationError            -> EmbeddingServiceError
    any other openai.APIError             -> EmbeddingServiceError
    wrong vector count / wrong dimension  -> EmbeddingServiceError
"""

from __future__ import annotations

import httpx
import openai
import structlog

from chatbot_kb.config.settings import Settings
from chatbot_kb.interfaces.embedding_provider import IEmbeddingProvider
from chatbot_kb.utils.errors import EmbeddingServiceError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"
_OPENAI_BATCH_LIMIT = 2048

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
    "intfloat/multilingual-e5-large-instruct": 1024,
}
_FALLBACK_DIMENSION = 1536


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) by default.  When
    ``openai_base_url`` is configured, the client points at that URL and
    uses ``openai_embedding_model`` if set.  Vectors from a model listed
    in ``_MODEL_DIMENSIONS`` are checked against the declared dimension;
    for other models every vector in a response must share one length.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = settings.openai_api_key

        # Build client kwargs - add base_url / shared transport only when given.
        client_kwargs: dict = {"api_key": self._api_key}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url
        if http_client is not None:
            client_kwargs["http_client"] = http_client
        # EmbeddingGenerator owns the retry policy; the SDK must make exactly one request.
        client_kwargs["max_retries"] = 0

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._known_dimension = _MODEL_DIMENSIONS.get(self._model)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in as few calls as the endpoint allows (2048 inputs each)."""
        if not texts:
            return []

        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), _OPENAI_BATCH_LIMIT):
            batch = texts[start : start + _OPENAI_BATCH_LIMIT]
            response = await self._create(batch)

            # The endpoint tags each vector with the position of its input.
            ordered = sorted(response.data, key=lambda item: item.index)
            batch_embeddings = [list(item.embedding) for item in ordered]
            self._validate(batch, batch_embeddings)
            all_embeddings.extend(batch_embeddings)

            logger.info(
                "openai_embedding_batch",
                model=self._model,
                provider=self._provider_label,
                batch_size=len(batch),
                tokens=response.usage.total_tokens if response.usage else None,
            )
        return all_embeddings

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._known_dimension or _FALLBACK_DIMENSION

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _create(self, batch: list[str]):  # noqa: ANN202 – SDK response type
        """Issue one embeddings call, translating SDK errors."""
        try:
            return await self._client.embeddings.create(input=batch, model=self._model)
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{self._provider_label} rate limited: {exc}",
                provider_name=self._provider_label,
            ) from exc
        except openai.APITimeoutError as exc:
            raise EmbeddingServiceError(
                message=f"{self._provider_label} request timed out",
                provider_name=self._provider_label,
            ) from exc
        except openai.APIConnectionError as exc:
            raise EmbeddingServiceError(
                message=f"{self._provider_label} connection failed: {exc}",
                provider_name=self._provider_label,
            ) from exc
        except openai.AuthenticationError as exc:
            raise EmbeddingServiceError(
                message=f"{self._provider_label} rejected the API key",
                provider_name=self._provider_label,
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingServiceError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self._provider_label,
            ) from exc

    def _validate(self, batch: list[str], vectors: list[list[float]]) -> None:
        if len(vectors) != len(batch):
            raise EmbeddingServiceError(
                message=(
                    f"{self._provider_label} returned {len(vectors)} vectors "
                    f"for {len(batch)} inputs"
                ),
                provider_name=self._provider_label,
            )

        expected = self._known_dimension or (len(vectors[0]) if vectors else 0)
        for position, vector in enumerate(vectors):
            if len(vector) != expected or expected == 0:
                raise EmbeddingServiceError(
                    message=(
                        f"{self._provider_label} returned a {len(vector)}-dim vector "
                        f"at position {position}; expected {expected}"
                    ),
                    provider_name=self._provider_label,
                )
