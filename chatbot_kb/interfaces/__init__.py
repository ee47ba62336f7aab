"""Public interface definitions for the pluggable pipeline components.

The ingestion service only talks to extractors, embedding services and
storage through the abstract base classes in this package.  Concrete
adapters live in ``chatbot_kb/providers/`` and are wired together in
``chatbot_kb/main.py`` (HTTP) and ``chatbot_kb/cli/ingest.py`` (CLI).

    Interface            ->  Concrete implementations
    ------------------------------------------------------------------
    IContentExtractor    ->  PDFContentExtractor, PlainTextContentExtractor
    IEmbeddingProvider   ->  OpenAIEmbeddingProvider
    IKnowledgeStore      ->  SQLiteKnowledgeStore
"""

from chatbot_kb.interfaces.content_extractor import IContentExtractor
from chatbot_kb.interfaces.embedding_provider import IEmbeddingProvider
from chatbot_kb.interfaces.knowledge_store import IKnowledgeStore

__all__ = ["IContentExtractor", "IEmbeddingProvider", "IKnowledgeStore"]
