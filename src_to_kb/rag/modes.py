from __future__ import annotations

"""Answer modes: per-audience result filtering and answer formatting."""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Pattern

from src_to_kb.rag.errors import ConfigurationError
from src_to_kb.rag.types import SearchResult

logger = logging.getLogger(__name__)

DEFAULT_MODE = "developer"
CODE_REMOVED_PLACEHOLDER = "[Code example removed for clarity]"
SOURCE_FILES_PREFIX = "Source files:"

_CODE_FENCE_RE = re.compile(r"```[\s\S]*?```")
_SOURCE_FILES_LINE_RE = re.compile(rf"^{re.escape(SOURCE_FILES_PREFIX)}.*$\n?", re.MULTILINE)


def _patterns(*expressions: str) -> tuple[Pattern[str], ...]:
    return tuple(re.compile(expression, re.IGNORECASE) for expression in expressions)


@dataclass(frozen=True)
class Mode:
    """Named presentation policy for search results and answers.

    ``exclude_patterns`` and ``priority_types`` drive ``filter_results``;
    ``key`` selects the ``format_answer`` formatter, which reads
    ``include_code_snippets``. The remaining attributes, including
    ``avoid_terms``, are informational style hints reported by ``describe()``
    and never rewrite answer text.
    """
    key: str
    name: str
    description: str
    exclude_patterns: tuple[Pattern[str], ...] = ()
    priority_types: tuple[str, ...] = ()
    depth: str = "medium"
    include_code_snippets: bool = True
    include_implementation_details: bool = True
    focus_on: str = ""
    tone: str = ""
    avoid_terms: tuple[str, ...] = field(default_factory=tuple)
    include_terms: tuple[str, ...] = field(default_factory=tuple)
    prefer_code: bool = False

    def describe(self) -> dict[str, object]:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "exclude_patterns": [pattern.pattern for pattern in self.exclude_patterns],
            "priority_types": list(self.priority_types),
            "depth": self.depth,
            "include_code_snippets": self.include_code_snippets,
            "include_implementation_details": self.include_implementation_details,
            "focus_on": self.focus_on,
            "tone": self.tone,
            "avoid_terms": list(self.avoid_terms),
            "include_terms": list(self.include_terms),
            "prefer_code": self.prefer_code,
        }


MODES: dict[str, Mode] = {
    "enduser": Mode(
        key="enduser",
        name="End User",
        description=(
            "Simplified answers for non-technical users, avoiding internal "
            "implementation details"
        ),
        exclude_patterns=_patterns(
            r"test\.",
            r"spec\.",
            r"\.test\.",
            r"\.spec\.",
            r"internal",
            r"private",
            r"debug",
            r"mock",
            r"stub",
            r"__tests__",
            r"\.d\.ts$",
        ),
        priority_types=("documentation", "api", "interface", "public"),
        depth="low",
        include_code_snippets=False,
        include_implementation_details=False,
        focus_on="features and capabilities",
        tone="simple and friendly",
        avoid_terms=("architecture", "implementation", "internal", "backend", "database", "schema"),
    ),
    "developer": Mode(
        key="developer",
        name="Developer",
        description="Detailed technical answers including architecture and implementation details",
        priority_types=("code", "test", "config", "architecture", "internal"),
        depth="high",
        focus_on="technical implementation and architecture",
        tone="technical and precise",
        include_terms=("implementation", "architecture", "design patterns", "dependencies", "data flow"),
    ),
    "copilot": Mode(
        key="copilot",
        name="Copilot",
        description="Code-focused answers with examples and patterns for implementation",
        exclude_patterns=_patterns(r"README", r"CHANGELOG", r"LICENSE", r"\.md$"),
        priority_types=("code", "test", "example", "snippet"),
        depth="medium",
        focus_on="code examples and implementation patterns",
        tone="instructive with examples",
        include_terms=("example", "pattern", "usage", "implementation", "code"),
        prefer_code=True,
    ),
}


def get_mode(key: str | None, strict: bool = False) -> Mode:
    """Resolve a mode key, falling back to the developer mode.

    With ``strict`` an unknown key raises ConfigurationError instead.
    """
    normalized = (key or "").strip().lower()
    mode = MODES.get(normalized)
    if mode is not None:
        return mode
    if strict:
        raise ConfigurationError(f"Unknown answer mode: {key!r}")
    if normalized:
        logger.warning("mode_fallback", extra={"requested": normalized, "mode": DEFAULT_MODE})
    return MODES[DEFAULT_MODE]


def list_modes() -> list[dict[str, str]]:
    return [
        {"key": mode.key, "name": mode.name, "description": mode.description}
        for mode in MODES.values()
    ]


def is_excluded(result: SearchResult, mode: Mode) -> bool:
    return any(pattern.search(result.document_path) for pattern in mode.exclude_patterns)


def has_priority(result: SearchResult, mode: Mode) -> bool:
    path = result.document_path.lower()
    language = (result.document_language or "").lower()
    return any(kind in path or language == kind for kind in mode.priority_types)


def filter_results(results: list[SearchResult], mode: Mode) -> list[SearchResult]:
    """Drop excluded results and move prioritized ones ahead, keeping order."""
    survivors = [result for result in results if not is_excluded(result, mode)]
    if not mode.priority_types:
        return survivors
    preferred: list[SearchResult] = []
    remaining: list[SearchResult] = []
    for result in survivors:
        if has_priority(result, mode):
            preferred.append(result)
        else:
            remaining.append(result)
    return preferred + remaining


def _format_enduser(answer: str, results: list[SearchResult], mode: Mode) -> str:
    formatted = answer
    if not mode.include_code_snippets:
        formatted = _CODE_FENCE_RE.sub(CODE_REMOVED_PLACEHOLDER, formatted)
    formatted = _SOURCE_FILES_LINE_RE.sub("", formatted)
    return formatted.rstrip()


def _format_copilot(answer: str, results: list[SearchResult], mode: Mode) -> str:
    with_content = [result for result in results if result.full_content]
    examples = [code_block(result) for result in with_content[:2]]
    if not examples:
        return answer
    return answer + "\n\nCode Examples:\n" + "\n\n".join(examples)


def _format_unchanged(answer: str, results: list[SearchResult], mode: Mode) -> str:
    return answer


def code_block(result: SearchResult, max_lines: int = 20) -> str:
    """Render the first lines of a result as a labelled fenced block."""
    language = (result.document_language or "text").lower()
    lines = result.full_content.split("\n")[:max_lines]
    body = "\n".join(lines)
    return f"```{language}\n// From: {result.document_path}\n{body}\n```"


_FORMATTERS: dict[str, Callable[[str, list[SearchResult], Mode], str]] = {
    "enduser": _format_enduser,
    "copilot": _format_copilot,
    "developer": _format_unchanged,
}


def format_answer(answer: str, results: list[SearchResult], mode: Mode) -> str:
    """Apply the mode-specific presentation to a synthesized answer."""
    formatter = _FORMATTERS.get(mode.key, _format_unchanged)
    return formatter(answer, results, mode)
