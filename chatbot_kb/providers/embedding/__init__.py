"""Embedding provider implementations.

Embeddings convert chunk text into numeric vectors that capture semantic
meaning; the chat path compares them against the user's question.

    OpenAIEmbeddingProvider - text-embedding-3-small (1536 dims) by default,
    or any OpenAI-compatible endpoint via ``OPENAI_BASE_URL``.
"""

from chatbot_kb.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
