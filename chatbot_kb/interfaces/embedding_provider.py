"""Contract for the service that turns chunk text into vectors.

The ingestion pipeline only talks to this interface; batching, timeouts
and retries live in :class:`~chatbot_kb.services.ingestion.embedding_generator.EmbeddingGenerator`,
so an implementation translates exactly one request per call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider (chatbot_kb/providers/embedding/)
class IEmbeddingProvider(ABC):
    """Produces one fixed-length vector per input text.

    The vectors are stored next to their chunk by the knowledge store and
    compared at chat time, so every vector from one provider must have
    :meth:`get_dimension` components.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, returning vectors in the same order.

        Parameters
        ----------
        texts:
            Chunk texts; an empty list returns ``[]`` without a call.

        Returns
        -------
        list[list[float]]
            ``len(texts)`` vectors, each of length :meth:`get_dimension`.

        Raises
        ------
        chatbot_kb.utils.errors.RateLimitError
            The service is throttling; the caller may retry later.
        chatbot_kb.utils.errors.EmbeddingServiceError
            Any other failure, including a response with the wrong number
            or shape of vectors.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Embed one text."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Vector length, e.g. 1536 for ``text-embedding-3-small``."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Identifier used in logs, errors and ``/health``."""

    @abstractmethod
    def is_available(self) -> bool:
        """``False`` when credentials are missing and every call would fail."""
