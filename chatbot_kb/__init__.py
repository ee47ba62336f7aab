"""Chatbot knowledge-base ingestion service.

Turns uploaded PDF and text documents into per-chatbot knowledge sources:
extract page text, split it into overlapping chunks, embed every chunk, and
store the source row plus its chunks for retrieval-augmented chat.
"""

__version__ = "0.1.0"
