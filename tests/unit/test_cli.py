"""Unit tests for the knowledge-base CLI handlers and entry point."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from chatbot_kb.cli import ingest as cli
from chatbot_kb.models.knowledge import SourceType
from chatbot_kb.providers.store.sqlite_knowledge_store import SQLiteKnowledgeStore
from tests.conftest import FakeContentExtractor, build_service, corrupt_extractor


def _ns(**kwargs) -> argparse.Namespace:
    return argparse.Namespace(**kwargs)


class TestParser:
    def test_ingest_subcommands_require_file_and_chatbot(self) -> None:
        parser = cli._build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["pdf", "--file", "a.pdf"])

    def test_delete_accepts_short_yes(self) -> None:
        args = cli._build_parser().parse_args(["delete", "--source", "abc", "-y"])
        assert args.source == "abc"
        assert args.yes is True

    def test_orphans_defaults(self) -> None:
        args = cli._build_parser().parse_args(["orphans"])
        assert args.chatbot is None
        assert args.delete is False
        assert args.yes is False


class TestIngestHandler:
    @pytest.mark.asyncio
    async def test_ingest_text_file(
        self, knowledge_store: SQLiteKnowledgeStore, tmp_path: Path, capsys
    ) -> None:
        path = tmp_path / "faq.txt"
        path.write_text("Opening hours are nine to five.", encoding="utf-8")
        service = build_service(
            knowledge_store,
            extractors=[FakeContentExtractor(["Opening hours are nine to five."], SourceType.TEXT)],
        )

        code = await cli._handle_ingest(
            _ns(file=str(path), chatbot="bot-1"), service, SourceType.TEXT
        )

        assert code == 0
        out = capsys.readouterr().out
        payload = json.loads(next(l for l in out.splitlines() if l.startswith('{"success"')))
        assert payload["success"] is True
        source = await knowledge_store.get_source(payload["sourceId"])
        assert source is not None and source.source_name == "faq.txt"

    @pytest.mark.asyncio
    async def test_missing_file(self, knowledge_store: SQLiteKnowledgeStore, tmp_path: Path) -> None:
        service = build_service(knowledge_store)
        code = await cli._handle_ingest(
            _ns(file=str(tmp_path / "nope.pdf"), chatbot="bot-1"), service, SourceType.PDF
        )
        assert code == 1

    @pytest.mark.asyncio
    async def test_failed_ingest_reports_error(
        self, knowledge_store: SQLiteKnowledgeStore, tmp_path: Path, capsys
    ) -> None:
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"not a pdf")
        service = build_service(knowledge_store, extractors=[corrupt_extractor()])

        code = await cli._handle_ingest(_ns(file=str(path), chatbot="bot-1"), service, SourceType.PDF)

        captured = capsys.readouterr()
        assert code == 1
        assert "extraction_failed" in captured.err
        assert await knowledge_store.list_sources() == []


class TestManagementHandlers:
    @pytest.mark.asyncio
    async def test_sources_lists_rows(self, knowledge_store: SQLiteKnowledgeStore, capsys) -> None:
        await knowledge_store.record_source(
            "bot-1", SourceType.PDF, "manual.pdf", {"pages": 3, "chunk_count": 7}
        )
        code = await cli._handle_sources(_ns(chatbot="bot-1"), knowledge_store)

        out = capsys.readouterr().out
        assert code == 0
        assert "manual.pdf" in out
        assert "1 source(s)" in out

    @pytest.mark.asyncio
    async def test_sources_empty(self, knowledge_store: SQLiteKnowledgeStore, capsys) -> None:
        assert await cli._handle_sources(_ns(chatbot=None), knowledge_store) == 0
        assert "No knowledge sources found." in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_delete_with_yes(self, knowledge_store: SQLiteKnowledgeStore) -> None:
        source_id = await knowledge_store.record_source("bot-1", SourceType.TEXT, "a.txt", {})
        code = await cli._handle_delete(_ns(source=source_id, yes=True), knowledge_store)
        assert code == 0
        assert await knowledge_store.get_source(source_id) is None

    @pytest.mark.asyncio
    async def test_delete_aborted_at_prompt(self, knowledge_store: SQLiteKnowledgeStore) -> None:
        source_id = await knowledge_store.record_source("bot-1", SourceType.TEXT, "a.txt", {})
        with patch("builtins.input", return_value="n"):
            code = await cli._handle_delete(_ns(source=source_id, yes=False), knowledge_store)
        assert code == 1
        assert await knowledge_store.get_source(source_id) is not None

    @pytest.mark.asyncio
    async def test_delete_missing_source(self, knowledge_store: SQLiteKnowledgeStore) -> None:
        assert await cli._handle_delete(_ns(source="missing", yes=True), knowledge_store) == 1

    @pytest.mark.asyncio
    async def test_orphans_listed_then_deleted(
        self, knowledge_store: SQLiteKnowledgeStore, capsys
    ) -> None:
        orphan = await knowledge_store.record_source(
            "bot-1", SourceType.PDF, "lost.pdf", {"pages": 1, "chunk_count": 4}
        )

        assert await cli._handle_orphans(_ns(chatbot=None, delete=False, yes=False), knowledge_store) == 0
        assert orphan in capsys.readouterr().out
        assert await knowledge_store.get_source(orphan) is not None

        assert await cli._handle_orphans(_ns(chatbot=None, delete=True, yes=True), knowledge_store) == 0
        assert await knowledge_store.get_source(orphan) is None


class TestMain:
    @pytest.fixture(autouse=True)
    def _keep_logging_config(self):
        # Logging set up inside a capsys test would stay bound to its stream.
        with patch("chatbot_kb.cli.ingest.configure_logging"):
            yield

    def test_no_command_prints_help(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code == 1

    def test_sources_command(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
        monkeypatch.setenv("KNOWLEDGE_DB_PATH", str(tmp_path / "cli" / "knowledge.db"))
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["sources"])
        assert exc_info.value.code == 0
        assert "No knowledge sources found." in capsys.readouterr().out

    def test_ingest_without_api_key_fails(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys
    ) -> None:
        path = tmp_path / "faq.txt"
        path.write_text("hello", encoding="utf-8")
        monkeypatch.setenv("KNOWLEDGE_DB_PATH", str(tmp_path / "cli" / "knowledge.db"))
        monkeypatch.setenv("OPENAI_API_KEY", "")

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["text", "--file", str(path), "--chatbot", "bot-1"])

        assert exc_info.value.code == 1
        assert "OPENAI_API_KEY" in capsys.readouterr().err
