"""
Command-line interface for the Pathwise RAG system.

Configuration comes from the environment (see RAGConfig.from_env).
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import RAGConfig
from .errors import RAGError
from .indexing import JsonFileBackend, StorageBackend
from .rag_system import RAGSystem, build_mongo_backend


def parse_metadata(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Turn ["key=value", ...] into a dict."""
    metadata = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Metadata must look like KEY=VALUE, got {pair!r}")
        metadata[key] = value
    return metadata


def copy_records(source: StorageBackend, target: StorageBackend) -> Tuple[int, int]:
    """
    Copy every record from source into target, skipping ids target already has.

    Returns:
        (copied, skipped) counts
    """
    existing = {r.id for r in target.load_all()}
    copied = skipped = 0

    for record in source.load_all():
        if record.id in existing:
            skipped += 1
            continue
        target.insert_one(record)
        existing.add(record.id)
        copied += 1

    return copied, skipped


async def _run(args: argparse.Namespace, config: RAGConfig) -> int:
    if args.command == "migrate":
        return _migrate(config)

    system = RAGSystem.from_config(config)
    try:
        await system.start()

        if args.command == "ingest":
            result = await system.ingest(
                Path(args.path),
                metadata=parse_metadata(args.meta),
                source=args.source
            )
            print(json.dumps(result.to_dict(), indent=2))

        elif args.command == "query":
            result = await system.query(
                args.text,
                top_k=args.top_k,
                extra_context=args.context
            )
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            return 0 if result.success else 1

        elif args.command == "remove":
            removed = await system.remove_source(args.source)
            print(f"Removed {removed} chunks from source: {args.source}")

        elif args.command == "clear":
            await system.clear()
            print("Vector store cleared")

        elif args.command == "stats":
            print(json.dumps(system.get_stats(), indent=2, default=str))

    finally:
        await system.close()

    return 0


def _migrate(config: RAGConfig) -> int:
    if not config.mongodb_uri:
        print("❌ MONGODB_URI not set; nothing to migrate to")
        return 1

    file_backend = JsonFileBackend(config.vector_store_path, verbose=config.verbose)
    mongo_backend = build_mongo_backend(config)
    try:
        mongo_backend.ping()
        print(f"🔄 Migrating {config.vector_store_path} to MongoDB...")
        copied, skipped = copy_records(file_backend, mongo_backend)
    finally:
        mongo_backend.close()

    print(f"✅ Copied {copied} chunks ({skipped} already present)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pathwise-rag", description="Document RAG for the Pathwise counselor")
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print command results"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest a text or PDF file")
    ingest.add_argument("path", type=str, help="File to ingest")
    ingest.add_argument("--source", type=str, default=None, help="Source name (defaults to the file name)")
    ingest.add_argument("--meta", action="append", metavar="KEY=VALUE", help="Extra metadata for every chunk")

    query = subparsers.add_parser("query", help="Ask a question against the stored documents")
    query.add_argument("text", type=str, help="Question text")
    query.add_argument("--top-k", type=int, default=None, help="Number of chunks to retrieve")
    query.add_argument("--context", type=str, default=None, help="Extra context for the prompt")

    remove = subparsers.add_parser("remove", help="Remove every chunk of one source")
    remove.add_argument("source", type=str, help="Source name")

    subparsers.add_parser("clear", help="Remove all chunks")
    subparsers.add_parser("stats", help="Show store statistics")
    subparsers.add_parser("migrate", help="Copy the JSON file store into MongoDB")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = RAGConfig.from_env()
    config.verbose = not args.quiet

    try:
        return asyncio.run(_run(args, config))
    except (RAGError, argparse.ArgumentTypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
