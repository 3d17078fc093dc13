from __future__ import annotations

"""Context snippet extraction around keyword matches."""

import re

_WHITESPACE_RE = re.compile(r"\s+")

SNIPPET_WINDOW = 80
SNIPPET_DEDUP_PREFIX = 30


def build_snippet(
    content: str,
    keyword: str,
    window: int = SNIPPET_WINDOW,
) -> str | None:
    """Return the whitespace-collapsed window around the first keyword match.

    The match is located on ``content`` itself, since lowercasing can change
    the length of non-ASCII text.
    """
    match = re.search(re.escape(keyword), content, re.IGNORECASE)
    if match is None:
        return None
    start = max(0, match.start() - window)
    end = min(len(content), match.end() + window)
    snippet = _WHITESPACE_RE.sub(" ", content[start:end].strip())
    return snippet or None


def add_snippet(snippets: list[str], snippet: str | None) -> None:
    """Append a snippet unless one with the same leading text is present."""
    if not snippet:
        return
    prefix = snippet[:SNIPPET_DEDUP_PREFIX]
    if any(existing[:SNIPPET_DEDUP_PREFIX] == prefix for existing in snippets):
        return
    snippets.append(snippet)
