"""Command-line entry point.

Examples
--------
    knowledge-ingest configure --openai-api-key sk-... --chroma-host localhost --collection documents
    knowledge-ingest ingest --title "Release notes" --file notes.md
    knowledge-ingest list
    knowledge-ingest search "How do I rotate keys?" -k 3
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Callable
from pathlib import Path

from knowledge_ingest.config import ApiConfig, clear_state, configure_logging, load_state, save_api_config
from knowledge_ingest.exceptions import IngestError
from knowledge_ingest.ingestion.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[], IngestionPipeline]


def _default_factory() -> IngestionPipeline:
    return IngestionPipeline.from_state(load_state())


def _read_text(args: argparse.Namespace) -> str:
    if args.file:
        return Path(args.file).read_text(encoding="utf-8")
    return args.text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="knowledge-ingest", description="Text ingestion into a vector store")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("ingest", "update"):
        cmd = sub.add_parser(name, help=f"{name.capitalize()} a document")
        if name == "update":
            cmd.add_argument("record_id")
        cmd.add_argument("--title", required=True)
        source = cmd.add_mutually_exclusive_group(required=True)
        source.add_argument("--file", help="Read the document from this file")
        source.add_argument("--text", help="Document text given inline")

    sub.add_parser("list", help="List stored records, newest first")

    delete = sub.add_parser("delete", help="Delete a record")
    delete.add_argument("record_id")

    search = sub.add_parser("search", help="Similarity search by text")
    search.add_argument("query")
    search.add_argument("-k", type=int, default=5)

    configure = sub.add_parser("configure", help="Save API credentials")
    configure.add_argument("--openai-api-key", required=True)
    configure.add_argument("--chroma-host", required=True)
    configure.add_argument("--chroma-port", type=int, default=8000)
    configure.add_argument("--collection", required=True)

    sub.add_parser("clear-config", help="Forget saved API credentials")
    return parser


async def _run(args: argparse.Namespace, factory: PipelineFactory) -> None:
    if args.command == "configure":
        save_api_config(
            ApiConfig(
                openai_api_key=args.openai_api_key,
                chroma_host=args.chroma_host,
                chroma_port=args.chroma_port,
                chroma_collection=args.collection,
            )
        )
        print("Configuration saved.")
        return
    if args.command == "clear-config":
        clear_state()
        print("Configuration cleared.")
        return

    pipeline = factory()
    if args.command == "ingest":
        result = await pipeline.ingest(args.title, _read_text(args))
        print(f"Stored {result.success_count}/{result.total_chunks} chunk(s).")
        if result.partial:
            print(f"Failed chunk indices: {result.failed_indices}")
    elif args.command == "update":
        enriched = await pipeline.update(args.record_id, args.title, _read_text(args))
        print(f"Updated {args.record_id} ({len(enriched.qa_pairs)} QA pair(s)).")
    elif args.command == "list":
        for record in await pipeline.list_records():
            meta = record.metadata
            print(f"{record.id}\t{meta.get('title', '')}\t{meta.get('chunk_index', 0) + 1}/{meta.get('total_chunks', 1)}")
    elif args.command == "delete":
        await pipeline.delete(args.record_id)
        print(f"Deleted {args.record_id}.")
    elif args.command == "search":
        for hit in await pipeline.search(args.query, k=args.k):
            print(f"{hit.similarity:.3f}\t{hit.record.id}\t{hit.record.metadata.get('title', '')}")


def main(argv: list[str] | None = None, factory: PipelineFactory = _default_factory) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        asyncio.run(_run(args, factory))
    except IngestError as exc:
        logger.error("%s: %s", type(exc).__name__, exc.message)
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
