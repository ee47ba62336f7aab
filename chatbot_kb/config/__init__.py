"""Configuration module - exports Settings."""

from chatbot_kb.config.settings import Settings

__all__ = ["Settings"]
