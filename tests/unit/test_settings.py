"""Unit tests for Settings validation."""

import pytest
from pydantic import ValidationError

from chatbot_kb.config.settings import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_chunking_defaults() -> None:
    settings = _settings()
    assert settings.chunk_size == 1000
    assert settings.chunk_overlap == 200
    assert settings.chunk_boundary_window == 200
    assert settings.max_upload_bytes == 10 * 1024 * 1024


def test_overlap_must_be_smaller_than_chunk_size() -> None:
    with pytest.raises(ValidationError):
        _settings(chunk_size=100, chunk_overlap=100)


def test_negative_overlap_rejected() -> None:
    with pytest.raises(ValidationError):
        _settings(chunk_overlap=-1)


@pytest.mark.parametrize(
    "field",
    ["chunk_size", "embedding_batch_size", "embedding_max_attempts", "max_upload_bytes"],
)
def test_positive_fields(field: str) -> None:
    with pytest.raises(ValidationError):
        _settings(**{field: 0})


def test_cors_origins_split() -> None:
    settings = _settings(cors_allowed_origins="https://a.example, https://b.example,")
    assert settings.get_cors_origins() == ["https://a.example", "https://b.example"]


def test_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHUNK_SIZE", "1500")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    settings = _settings()
    assert settings.chunk_size == 1500
    assert settings.openai_api_key == "sk-env"
