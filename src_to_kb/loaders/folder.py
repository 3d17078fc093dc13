from __future__ import annotations

"""Recursive directory scanner producing source files for ingestion."""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

from src_to_kb.loaders.text import load_text_file
from src_to_kb.rag.types import SourceFile

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_PATHS = (
    "node_modules",
    ".git",
    "dist",
    "build",
    ".next",
    "coverage",
    ".cache",
    "vendor",
    "__pycache__",
)

DEFAULT_EXTENSIONS = (
    ".js", ".ts", ".jsx", ".tsx", ".py", ".java", ".cpp", ".c", ".cs", ".go",
    ".rs", ".rb", ".php", ".md", ".txt", ".json", ".yaml", ".yml", ".xml",
    ".html", ".css", ".scss", ".sql",
)


class FolderLoaderError(RuntimeError):
    pass


def scan_directory(
    root: Path | str,
    max_depth: int = 10,
    exclude_paths: Iterable[str] = DEFAULT_EXCLUDE_PATHS,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    max_file_size: int = 10 * 1024 * 1024,
) -> Iterator[SourceFile]:
    """Yield supported files under root in a stable (sorted) order."""
    root_path = Path(root)
    if not root_path.is_dir():
        raise FolderLoaderError(f"Repository path does not exist: {root}")
    excluded = [value for value in exclude_paths if value]
    allowed = {value.lower() for value in extensions}

    for current, dirnames, filenames in os.walk(root_path):
        current_path = Path(current)
        depth = len(current_path.relative_to(root_path).parts)
        dirnames[:] = sorted(
            name
            for name in dirnames
            if depth < max_depth
            and not _is_excluded((current_path / name).relative_to(root_path).as_posix(), excluded)
        )
        for filename in sorted(filenames):
            full_path = current_path / filename
            relative = full_path.relative_to(root_path).as_posix()
            if _is_excluded(relative, excluded):
                continue
            if full_path.suffix.lower() not in allowed:
                continue
            try:
                if full_path.stat().st_size > max_file_size:
                    logger.info("file_skipped_too_large", extra={"path": relative})
                    continue
                yield load_text_file(full_path, root=root_path)
            except OSError as exc:
                logger.warning(
                    "file_read_failed",
                    extra={"path": relative, "error": type(exc).__name__},
                )


def _is_excluded(relative_path: str, excluded: list[str]) -> bool:
    return any(fragment in relative_path for fragment in excluded)
