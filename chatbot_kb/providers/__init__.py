"""Concrete adapters for the interfaces in :mod:`chatbot_kb.interfaces`."""
