"""CLI tools for the chatbot knowledge base.

- ``python -m chatbot_kb.cli`` - ingest PDF / text files, list and delete
  knowledge sources, and find sources left without chunks.

All CLI modules use argparse.  Heavy imports (openai SDK, PyMuPDF) are
deferred inside functions so listing commands start quickly.
"""
