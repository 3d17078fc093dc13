from __future__ import annotations

from dataclasses import dataclass

from src_to_kb.rag.types import SearchResult


NOT_FOUND_ANSWER = "I couldn't find any relevant information about that in the knowledge base."


@dataclass(frozen=True)
class GuardrailResult:
    allowed: bool
    reason: str


def require_results(results: list[SearchResult]) -> GuardrailResult:
    """Allow synthesis for any non-empty result list.

    Results without content (metadata-only remote items) still count.
    """
    if not results:
        return GuardrailResult(allowed=False, reason="no_results")
    return GuardrailResult(allowed=True, reason="ok")
