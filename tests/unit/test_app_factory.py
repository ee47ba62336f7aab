"""Tests for application assembly in chatbot_kb.main."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from chatbot_kb.config.settings import Settings
from chatbot_kb.main import _build_all, create_app
from chatbot_kb.services.ingestion.ingestion_service import IngestionService


def _settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "knowledge_db_path": str(tmp_path / "data" / "knowledge.db"),
        "openai_api_key": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.mark.asyncio
async def test_build_all_wires_components(tmp_path: Path) -> None:
    components = _build_all(_settings(tmp_path, openai_api_key="sk-test"))
    try:
        assert isinstance(components["ingestion_service"], IngestionService)
        registry = components["provider_registry"]
        assert registry["embedding"] is True
        assert registry["embedding_provider"] == "openai_embedding"
        assert registry["extractors"] == ["pdf", "text"]
    finally:
        await components["http_client"].aclose()


def test_lifespan_initializes_store_and_reports_degraded(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    app = create_app(settings)

    with TestClient(app) as client:
        resp = client.get("/api/v1/health")
        sources = client.get("/api/v1/knowledge-base/bot-1/sources")

    assert Path(settings.knowledge_db_path).exists()
    assert resp.json()["status"] == "degraded"
    assert sources.status_code == 200
    assert sources.json()["total"] == 0
