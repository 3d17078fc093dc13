from __future__ import annotations

"""Plain text loading and file classification for ingestion."""

from pathlib import Path, PurePosixPath

from src_to_kb.rag.types import SourceFile

LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".mjs": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".py": "Python",
    ".java": "Java",
    ".cpp": "C++",
    ".c": "C",
    ".cs": "C#",
    ".go": "Go",
    ".rs": "Rust",
    ".rust": "Rust",
    ".rb": "Ruby",
    ".php": "PHP",
    ".swift": "Swift",
    ".kt": "Kotlin",
    ".scala": "Scala",
    ".r": "R",
    ".m": "MATLAB",
    ".sql": "SQL",
    ".html": "HTML",
    ".css": "CSS",
    ".scss": "SCSS",
    ".xml": "XML",
    ".json": "JSON",
    ".yaml": "YAML",
    ".yml": "YAML",
    ".md": "Markdown",
    ".txt": "Text",
}

FILE_TYPE_BY_EXTENSION: dict[str, str] = {
    **{
        ext: "code"
        for ext in (
            ".js", ".jsx", ".mjs", ".ts", ".tsx", ".py", ".java", ".cpp", ".c",
            ".cs", ".go", ".rs", ".rust", ".rb", ".php",
        )
    },
    ".md": "text",
    ".txt": "text",
    ".json": "config",
    ".yaml": "config",
    ".yml": "config",
    ".xml": "config",
    ".html": "web",
    ".css": "web",
    ".scss": "web",
}


def detect_language(path: str | Path) -> str:
    """Return the language name for a path based on its extension."""
    return LANGUAGE_BY_EXTENSION.get(PurePosixPath(str(path)).suffix.lower(), "Unknown")


def detect_file_type(path: str | Path) -> str:
    """Return the coarse file category (code, text, config, web, other)."""
    return FILE_TYPE_BY_EXTENSION.get(PurePosixPath(str(path)).suffix.lower(), "other")


def load_text_file(path: Path, root: Path | None = None) -> SourceFile:
    """Load a text file from disk into a SourceFile."""
    data = path.read_bytes()
    relative = path.relative_to(root) if root is not None else path
    return load_text_bytes(data, relative.as_posix())


def load_text_bytes(
    data: bytes,
    relative_path: str,
    language: str | None = None,
    doc_type: str | None = None,
) -> SourceFile:
    """Load plain text bytes into a SourceFile."""
    content = data.decode("utf-8", errors="ignore")
    return SourceFile(
        relative_path=relative_path,
        content=content,
        size_bytes=len(data),
        language=language or detect_language(relative_path),
        doc_type=doc_type or detect_file_type(relative_path),
    )
