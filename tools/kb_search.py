from __future__ import annotations

"""CLI utility to index a source tree and query it from the terminal."""

import argparse
import logging
import sys

from src_to_kb.app.settings import settings
from src_to_kb.loaders.folder import (
    DEFAULT_EXCLUDE_PATHS,
    DEFAULT_EXTENSIONS,
    FolderLoaderError,
    scan_directory,
)
from src_to_kb.rag.errors import ConfigurationError
from src_to_kb.rag.modes import MODES
from src_to_kb.rag.pipeline import KnowledgeBasePipeline
from src_to_kb.rag.search import find_similar_files


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search a source tree as a knowledge base.")
    parser.add_argument("root", help="Repository or folder to index.")
    parser.add_argument("--chunk-size", type=int, default=settings.chunk_size)
    parser.add_argument("--chunk-overlap", type=int, default=settings.chunk_overlap)
    parser.add_argument(
        "--no-comments",
        action="store_true",
        help="Strip comments before chunking.",
    )
    parser.add_argument(
        "--exclude",
        default=",".join(DEFAULT_EXCLUDE_PATHS),
        help="Comma-separated path fragments to skip.",
    )
    parser.add_argument(
        "--extensions",
        default=",".join(DEFAULT_EXTENSIONS),
        help="Comma-separated file extensions to index.",
    )
    parser.add_argument("--verbose", action="store_true")
    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Keyword search with a synthesized answer.")
    search.add_argument("query")
    search.add_argument("--mode", choices=sorted(MODES), default=settings.default_mode)
    search.add_argument("--limit", type=int, default=settings.search_limit)

    commands.add_parser("stats", help="Show corpus statistics.")

    by_type = commands.add_parser("type", help="List files of a language or type.")
    by_type.add_argument("value")

    similar = commands.add_parser("similar", help="List files similar to a path.")
    similar.add_argument("path")
    return parser


def _split(raw: str) -> list[str]:
    return [value.strip() for value in raw.split(",") if value.strip()]


def _build_pipeline(args: argparse.Namespace) -> KnowledgeBasePipeline:
    pipeline = KnowledgeBasePipeline(
        chunk_size=args.chunk_size,
        chunk_overlap=args.chunk_overlap,
        include_comments=not args.no_comments,
        default_limit=settings.search_limit,
        default_mode=settings.default_mode,
    )
    sources = scan_directory(
        args.root,
        exclude_paths=_split(args.exclude),
        extensions=_split(args.extensions),
        max_file_size=settings.max_file_size,
    )
    stats = pipeline.ingest(sources, workers=settings.ingest_workers)
    print(f"Loaded {stats.files_processed} documents ({stats.total_chunks} chunks)")
    return pipeline


def _print_search(pipeline: KnowledgeBasePipeline, args: argparse.Namespace) -> None:
    print(f'\nSearching for: "{args.query}"\n')
    response = pipeline.answer(args.query, mode=args.mode, limit=args.limit)
    if not response.results:
        print("No results found")
        return
    print(f"Found {len(response.results)} results:\n")
    for position, result in enumerate(response.results, start=1):
        print(f"{position}. {result.document_path}")
        print(f"   Lines: {result.line_range} | Score: {result.score}")
        print(f"   Preview: {result.preview[:100]}...")
        if result.snippets:
            print(f'   Match: "...{result.snippets[0]}..."')
        print()
    print(f"Answer ({response.mode.name} mode, confidence {response.answer.confidence:.2f}):\n")
    print(response.answer.answer)


def _print_stats(pipeline: KnowledgeBasePipeline) -> None:
    stats = pipeline.index.stats()
    print("\nKnowledge Base Statistics\n")
    print(f"Total Documents: {stats['document_count']}")
    print(f"Total Chunks: {stats['chunk_count']}")
    print(f"Total Size: {stats['total_size'] / (1024 * 1024):.2f} MB")
    print("\nLanguages:")
    for language, count in sorted(stats["languages"].items(), key=lambda item: -item[1]):
        print(f"  {language}: {count} files")
    print("\nFile Types:")
    for doc_type, count in sorted(stats["types"].items(), key=lambda item: -item[1]):
        print(f"  {doc_type}: {count} files")


def _print_type(pipeline: KnowledgeBasePipeline, value: str) -> None:
    print(f"\nFiles of type/language: {value}\n")
    documents = pipeline.index.by_type(value)
    if not documents:
        print("No files found")
        return
    for document in documents:
        print(document.relative_path)
        print(f"   Language: {document.language} | Type: {document.doc_type}")
        print(f"   Size: {document.size_bytes / 1024:.2f} KB | Lines: {document.line_count}")
        print()


def _print_similar(pipeline: KnowledgeBasePipeline, path: str) -> None:
    print(f"\nFinding files similar to: {path}\n")
    similar = find_similar_files(pipeline.index, path)
    if not similar:
        print("No similar files found (file may not exist in KB)")
        return
    print(f"Found {len(similar)} similar files:\n")
    for entry in similar:
        print(entry["path"])
        print(f"   Language: {entry['language']} | Similarity: {entry['similarity']:.2f}")
        print()


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    try:
        pipeline = _build_pipeline(args)
    except (ConfigurationError, FolderLoaderError) as exc:
        raise SystemExit(str(exc)) from exc

    if args.command == "search":
        _print_search(pipeline, args)
    elif args.command == "stats":
        _print_stats(pipeline)
    elif args.command == "type":
        _print_type(pipeline, args.value)
    elif args.command == "similar":
        _print_similar(pipeline, args.path)


if __name__ == "__main__":
    main(sys.argv[1:])
