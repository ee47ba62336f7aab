"""Knowledge store implementations."""

from chatbot_kb.providers.store.sqlite_knowledge_store import SQLiteKnowledgeStore

__all__ = ["SQLiteKnowledgeStore"]
