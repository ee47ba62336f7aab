"""Document ingestion pipeline for chatbot knowledge bases.

Orchestrates the full pipeline: **extract -> chunk -> embed -> persist**.

1. **Extract** (via IContentExtractor) -- PDF or plain-text bytes become
   one text block per page.

2. **Chunk** (chunker.py / TextChunker) -- Page texts become ~1000-character
   windows with 200 characters of overlap, cut at paragraph, line, sentence
   or word breaks where possible.

3. **Embed** (embedding_generator.py / EmbeddingGenerator) -- Batches chunk
   texts through an IEmbeddingProvider with a per-call timeout and
   rate-limit backoff.

4. **Persist** (via IKnowledgeStore) -- One source row, then every chunk
   row in a single transaction.

The IngestionService class runs all four stages and returns an
IngestionResult.
"""

from chatbot_kb.services.ingestion.chunker import TextChunker
from chatbot_kb.services.ingestion.embedding_generator import EmbeddingGenerator
from chatbot_kb.services.ingestion.ingestion_service import IngestionService

__all__ = ["EmbeddingGenerator", "IngestionService", "TextChunker"]
