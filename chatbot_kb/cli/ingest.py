# =============================================================================
# chatbot_kb/cli/ingest.py - Knowledge-Base Ingestion CLI
# =============================================================================
#
# Operator tool for loading documents into a chatbot's knowledge base and
# for inspecting or repairing what is stored, without going through the
# HTTP upload route.
#
# Supported subcommands:
#
#   pdf      - Ingest a PDF file for a chatbot
#   text     - Ingest a UTF-8 text file for a chatbot
#   sources  - List stored knowledge sources (optionally for one chatbot)
#   delete   - Delete a knowledge source and its chunks
#   orphans  - List (or, with --delete, remove) sources whose chunk write
#              failed after the source row was committed
#
# Usage examples:
#   python -m chatbot_kb.cli pdf --file manual.pdf --chatbot bot-123
#   python -m chatbot_kb.cli text --file faq.txt --chatbot bot-123
#   python -m chatbot_kb.cli sources --chatbot bot-123
#   python -m chatbot_kb.cli delete --source 6f1c... --yes
#   python -m chatbot_kb.cli orphans --delete --yes
# =============================================================================

"""Standalone CLI for the chatbot knowledge base.

Exit code is 0 on success and 1 on any failure.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from chatbot_kb.config.settings import Settings
from chatbot_kb.utils.errors import ConfigurationError, KnowledgeBaseError
from chatbot_kb.utils.logging import configure_logging


def _build_knowledge_store(app_settings: Settings):  # noqa: ANN202
    """Construct the SQLite knowledge store configured in *app_settings*."""
    from chatbot_kb.providers.store.sqlite_knowledge_store import SQLiteKnowledgeStore

    return SQLiteKnowledgeStore(db_path=app_settings.knowledge_db_path)


def _build_ingestion_service(app_settings: Settings, knowledge_store):  # noqa: ANN001, ANN202
    """Construct the full ingestion service with all providers.

    Mirrors ``main._build_all`` so the CLI chunks and embeds exactly like
    the deployed app (chunk sizes and embedding model must match for
    retrieval to be consistent across sources).

    Imports are deferred so ``sources``/``delete``/``orphans`` never load
    the openai SDK or PyMuPDF.

    Raises
    ------
    ConfigurationError
        If no embedding API key is configured.
    """
    if not app_settings.openai_api_key:
        raise ConfigurationError(
            message="No embedding provider available. Set OPENAI_API_KEY.",
            provider_name="openai_embedding",
        )

    from chatbot_kb.providers.embedding.openai_embedding_provider import (
        OpenAIEmbeddingProvider,
    )
    from chatbot_kb.providers.extraction.pdf_extractor import PDFContentExtractor
    from chatbot_kb.providers.extraction.text_extractor import PlainTextContentExtractor
    from chatbot_kb.services.ingestion.chunker import TextChunker
    from chatbot_kb.services.ingestion.embedding_generator import EmbeddingGenerator
    from chatbot_kb.services.ingestion.ingestion_service import IngestionService

    embedding_provider = OpenAIEmbeddingProvider(settings=app_settings)
    return IngestionService(
        extractors=[
            PDFContentExtractor(temp_dir=app_settings.ingest_temp_dir),
            PlainTextContentExtractor(),
        ],
        chunker=TextChunker(
            chunk_size=app_settings.chunk_size,
            overlap=app_settings.chunk_overlap,
            boundary_window=app_settings.chunk_boundary_window,
        ),
        embedding_generator=EmbeddingGenerator(
            provider=embedding_provider,
            batch_size=app_settings.embedding_batch_size,
            timeout_seconds=app_settings.embedding_timeout_seconds,
            max_attempts=app_settings.embedding_max_attempts,
            backoff_base=app_settings.embedding_backoff_base_seconds,
            backoff_max=app_settings.embedding_backoff_max_seconds,
        ),
        knowledge_store=knowledge_store,
        storage_timeout_seconds=app_settings.storage_timeout_seconds,
    )


def _confirm(prompt: str) -> bool:
    return input(f"{prompt} [y/N] ").strip().lower() in ("y", "yes")


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, service, source_type) -> int:  # noqa: ANN001
    """Ingest one file for one chatbot and print the public result."""
    from chatbot_kb.models.knowledge import DocumentUpload

    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    document = DocumentUpload(
        data=path.read_bytes(),
        filename=path.name,
        declared_type=source_type,
    )
    print(f"Ingesting {source_type.value}: {path.name} for chatbot {args.chatbot}")

    result = await service.ingest(document, args.chatbot)
    print(json.dumps(result.to_public()))

    if not result.success:
        print(f"  Error code:  {result.error_code}", file=sys.stderr)
        if result.orphaned_source_id:
            print(
                f"  Orphaned source left behind: {result.orphaned_source_id} "
                "(remove with the 'orphans --delete' command)",
                file=sys.stderr,
            )
        return 1

    print(f"  Pages:   {result.page_count}")
    print(f"  Chunks:  {result.chunk_count}")
    print(f"  Time:    {result.duration_seconds:.2f}s")
    return 0


async def _handle_sources(args: argparse.Namespace, store) -> int:  # noqa: ANN001
    """List stored sources, newest first."""
    sources = await store.list_sources(args.chatbot)
    if not sources:
        print("No knowledge sources found.")
        return 0

    print(f"{'ID':<38} {'CHATBOT':<20} {'TYPE':<5} {'PAGES':>5} {'CHUNKS':>6}  NAME")
    for src in sources:
        print(
            f"{src.id:<38} {src.chatbot_id:<20} {src.source_type.value:<5} "
            f"{src.page_count:>5} {src.expected_chunk_count:>6}  {src.source_name}"
        )
    print(f"\n{len(sources)} source(s)")
    return 0


async def _handle_delete(args: argparse.Namespace, store) -> int:  # noqa: ANN001
    """Delete one source and, by cascade, its chunks."""
    source = await store.get_source(args.source)
    if source is None:
        print(f"Error: no knowledge source {args.source}", file=sys.stderr)
        return 1

    chunks = await store.count_chunks(source_id=source.id)
    print(f"Source {source.id}: {source.source_name} ({chunks} chunks)")

    if not args.yes and not _confirm("  Delete this source and its chunks?"):
        print("  Aborted.")
        return 1

    await store.delete_source(source.id)
    print("  Deleted.")
    return 0


async def _handle_orphans(args: argparse.Namespace, store) -> int:  # noqa: ANN001
    """List sources with recorded chunks missing; optionally delete them."""
    orphans = await store.find_orphaned_sources(args.chatbot)
    if not orphans:
        print("No orphaned sources.")
        return 0

    for src in orphans:
        print(
            f"{src.id}  chatbot={src.chatbot_id}  expected_chunks={src.expected_chunk_count}  "
            f"{src.source_name}"
        )
    print(f"\n{len(orphans)} orphaned source(s)")

    if not args.delete:
        return 0
    if not args.yes and not _confirm(f"  Delete {len(orphans)} orphaned source(s)?"):
        print("  Aborted.")
        return 1

    for src in orphans:
        await store.delete_source(src.id)
    print(f"  Deleted {len(orphans)} source(s).")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the knowledge-base CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m chatbot_kb.cli",
        description="Manage chatbot knowledge bases.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Knowledge-base commands")

    # -- pdf / text --
    for name, help_text in (("pdf", "Ingest a PDF file"), ("text", "Ingest a UTF-8 text file")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--file", required=True, help="Path to the file")
        sub.add_argument("--chatbot", required=True, help="Owning chatbot id")

    # -- sources --
    sources_parser = subparsers.add_parser("sources", help="List knowledge sources")
    sources_parser.add_argument("--chatbot", default=None, help="Restrict to one chatbot")

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete a knowledge source")
    delete_parser.add_argument("--source", required=True, help="Source id to delete")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    # -- orphans --
    orphans_parser = subparsers.add_parser(
        "orphans", help="List sources whose chunks are missing"
    )
    orphans_parser.add_argument("--chatbot", default=None, help="Restrict to one chatbot")
    orphans_parser.add_argument(
        "--delete", action="store_true", help="Delete the orphaned sources"
    )
    orphans_parser.add_argument(
        "--yes", "-y", action="store_true", help="Skip confirmation prompt"
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    store = _build_knowledge_store(app_settings)
    await store.initialize()

    if args.command == "sources":
        return await _handle_sources(args, store)
    if args.command == "delete":
        return await _handle_delete(args, store)
    if args.command == "orphans":
        return await _handle_orphans(args, store)

    from chatbot_kb.models.knowledge import SourceType

    service = _build_ingestion_service(app_settings, store)
    source_type = SourceType.PDF if args.command == "pdf" else SourceType.TEXT
    return await _handle_ingest(args, service, source_type)


def main(argv: list[str] | None = None) -> None:
    """Run one knowledge-base subcommand and exit with its status.

    Settings come from the same environment / ``.env`` as the API, so the
    CLI writes to the same database.  Only ``pdf`` and ``text`` need an
    embedding API key.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    try:
        exit_code = asyncio.run(_run(args, app_settings))
    except KnowledgeBaseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
