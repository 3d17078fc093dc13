from __future__ import annotations

"""Rule-based answer synthesis from ranked search results."""

import re
from collections import Counter
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Pattern

from src_to_kb.rag.citations import append_source_files, build_evidence, unique_paths
from src_to_kb.rag.guardrails import NOT_FOUND_ANSWER, require_results
from src_to_kb.rag.modes import Mode, format_answer, get_mode
from src_to_kb.rag.types import Answer, SearchResult

MAX_TOP_FILES = 5
EXCERPT_LINES = 8

_QUESTION_WORDS = ("how", "what", "why", "when", "where", "does", "can", "is")
_ROUTE_RE = re.compile(
    r"\.(get|post|put|patch|delete)\(\s*['\"](/[^'\"]*)['\"]",
    re.IGNORECASE,
)

EXTENSION_HINTS: dict[str, str] = {
    ".py": "Tip: these are Python modules; start from the top-ranked file and follow its imports.",
    ".js": "Tip: these are JavaScript modules; check what the top-ranked file exports and where it is required.",
    ".jsx": "Tip: these are React components; start from the top-ranked component and trace its props.",
    ".mjs": "Tip: these are JavaScript modules; check what the top-ranked file exports and where it is imported.",
    ".ts": "Tip: these are TypeScript modules; the type declarations next to the top-ranked file describe its contracts.",
    ".tsx": "Tip: these are React components; start from the top-ranked component and trace its props.",
    ".java": "Tip: these are Java classes; look at the public methods of the top-ranked class first.",
    ".go": "Tip: these are Go packages; the exported functions of the top-ranked file are the entry points.",
    ".sql": "Tip: these are SQL files; the table definitions show the data this feature relies on.",
    ".md": "Tip: these are documentation pages; they describe the behaviour rather than the code.",
    ".txt": "Tip: these are plain text notes; they describe the behaviour rather than the code.",
    ".json": "Tip: these are configuration files; the values here change behaviour without code changes.",
    ".yaml": "Tip: these are configuration files; the values here change behaviour without code changes.",
    ".yml": "Tip: these are configuration files; the values here change behaviour without code changes.",
}
DEFAULT_HINT = "Tip: open the top-ranked file first; it has the most keyword matches."


@dataclass(frozen=True)
class IntentContext:
    """Inputs handed to an intent template."""
    query: str
    results: list[SearchResult]
    preferred: list[SearchResult]

    @property
    def candidates(self) -> list[SearchResult]:
        return self.preferred or self.results

    @property
    def languages(self) -> list[str]:
        return _languages(self.results)


@dataclass(frozen=True)
class IntentRule:
    """Query intent with the paths it prefers and the template it renders.

    A template returning None lets the next rule (or the generic summary)
    handle the query.
    """
    name: str
    pattern: Pattern[str]
    template: Callable[[IntentContext], str | None]
    path_hints: tuple[str, ...] = ()
    extensions: tuple[str, ...] = ()
    confidence: float | None = None

    def matches(self, query: str) -> bool:
        return bool(self.pattern.search(query))

    def prefers(self, result: SearchResult) -> bool:
        path = result.document_path.lower()
        if any(hint in path for hint in self.path_hints):
            return True
        return bool(self.extensions) and path.endswith(self.extensions)


def _languages(results: list[SearchResult]) -> list[str]:
    """Return distinct result languages in first-seen order."""
    seen: list[str] = []
    for result in results:
        language = result.document_language
        if language and language not in seen:
            seen.append(language)
    return seen


def _truncate(text: str, limit: int) -> str:
    """Trim text to the character limit without cutting words."""
    if len(text) <= limit:
        return text
    return text[:limit].rsplit(" ", 1)[0] + "..."


def _excerpt(result: SearchResult, max_lines: int = EXCERPT_LINES) -> str:
    language = (result.document_language or "text").lower()
    lines = result.full_content.split("\n")[:max_lines]
    return "```{}\n{}\n```".format(language, "\n".join(lines))


def _key_context(result: SearchResult) -> str | None:
    if not result.snippets:
        return None
    return f'Key context: "{_truncate(result.snippets[0], 150)}"'


def _located(headline: str, ctx: IntentContext, details: list[str] | None = None) -> str:
    """Render the shared layout of the special-case templates."""
    primary = ctx.candidates[0]
    parts = [headline.format(path=primary.document_path, lines=primary.line_range)]
    parts.extend(details or [])
    related = [path for path in unique_paths(ctx.candidates) if path != primary.document_path]
    if related:
        parts.append(f"Related files: {', '.join(related[:3])}")
    context = _key_context(primary)
    if context:
        parts.append(context)
    if primary.full_content:
        parts.append(_excerpt(primary))
    answer = "\n\n".join(parts)
    return append_source_files(answer, unique_paths(ctx.candidates, limit=MAX_TOP_FILES))


def _language_answer(ctx: IntentContext) -> str | None:
    languages = ctx.languages
    if not languages:
        return None
    return f"Yes! This system supports {len(languages)} languages: {', '.join(languages)}"


def _password_reset_answer(ctx: IntentContext) -> str | None:
    if not ctx.preferred:
        paths = unique_paths(ctx.results, limit=3)
        answer = (
            "I couldn't find a dedicated password reset flow in the indexed files, "
            "so this feature may not exist yet. "
            f"The closest matches are in: {', '.join(paths)}."
        )
        return append_source_files(answer, paths)
    return _located(
        "To reset a password, start with `{path}` (lines {lines}), which implements the reset flow.",
        ctx,
    )


def _authentication_answer(ctx: IntentContext) -> str | None:
    combined = " ".join(result.full_content for result in ctx.candidates[:3]).lower()
    mechanisms = [
        label
        for token, label in (("jwt", "JWT tokens"), ("oauth", "OAuth"))
        if token in combined
    ]
    details: list[str] = []
    if mechanisms:
        details.append(f"It relies on {' and '.join(mechanisms)}.")
    return _located("Authentication is handled in `{path}` (lines {lines}).", ctx, details)


def _api_answer(ctx: IntentContext) -> str | None:
    routes: list[str] = []
    for result in ctx.candidates:
        for method, route in _ROUTE_RE.findall(result.full_content):
            entry = f"{method.upper()} {route}"
            if entry not in routes:
                routes.append(entry)
    details: list[str] = []
    if routes:
        details.append(f"Endpoints spotted: {', '.join(routes[:5])}")
    return _located("The API endpoints are defined in `{path}` (lines {lines}).", ctx, details)


def _data_model_answer(ctx: IntentContext) -> str | None:
    return _located("The data model is defined in `{path}` (lines {lines}).", ctx)


def _frontend_answer(ctx: IntentContext) -> str | None:
    return _located("The user interface is built in `{path}` (lines {lines}).", ctx)


INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        name="languages",
        pattern=re.compile(r"language|support"),
        template=_language_answer,
        confidence=0.9,
    ),
    IntentRule(
        name="password_reset",
        pattern=re.compile(
            r"\b(reset|forgot|forgotten|recover|change)\w*\W*(?:\w+\W+)?password"
            r"|password\W*(reset|recovery|recover|change|forgot)"
        ),
        template=_password_reset_answer,
        path_hints=("auth", "password", "reset", "login"),
    ),
    IntentRule(
        name="authentication",
        pattern=re.compile(r"\b(login|log in|sign in|signin|authenticat(?:e|ed|ion)|auth)\b"),
        template=_authentication_answer,
        path_hints=("auth", "login"),
    ),
    IntentRule(
        name="api",
        pattern=re.compile(r"\b(api|apis|endpoints?|routes?)\b"),
        template=_api_answer,
        path_hints=("api", "route", "controller"),
    ),
    IntentRule(
        name="data_model",
        pattern=re.compile(r"\b(database|databases|db|models?|schemas?)\b"),
        template=_data_model_answer,
        path_hints=("model", "schema", "database", "entity"),
    ),
    IntentRule(
        name="frontend",
        pattern=re.compile(r"\b(components?|ui|frontend|front-end)\b"),
        template=_frontend_answer,
        path_hints=("component", "view", "page"),
        extensions=(".tsx", ".jsx"),
    ),
)


def _is_question(query: str) -> bool:
    return "?" in query or any(query.startswith(word) for word in _QUESTION_WORDS)


def _dominant_extension(results: list[SearchResult]) -> str:
    counts = Counter(PurePosixPath(result.document_path).suffix.lower() for result in results)
    extension, _ = counts.most_common(1)[0]
    return extension


def _generic_answer(query: str, results: list[SearchResult]) -> str:
    lowered = query.lower()
    if _is_question(lowered):
        opening = "Based on the code analysis, here is what the knowledge base shows."
    else:
        opening = f"Found {len(results)} matches."
    parts = [opening]

    snippets: list[str] = []
    for result in results[:3]:
        for snippet in result.snippets:
            if len(snippet) > 20 and snippet not in snippets:
                snippets.append(snippet)
    if snippets:
        lines = ["Key context:"]
        lines.extend(f'- "{_truncate(snippet, 150)}"' for snippet in snippets[:2])
        parts.append("\n".join(lines))

    seen: set[str] = set()
    files: list[str] = []
    for result in results:
        if result.document_path in seen:
            continue
        seen.add(result.document_path)
        files.append(f"- {result.document_path} (lines {result.line_range})")
        if len(files) >= 4:
            break
    parts.append("Found in:\n" + "\n".join(files))
    parts.append(EXTENSION_HINTS.get(_dominant_extension(results), DEFAULT_HINT))
    return "\n\n".join(parts)


def synthesize(query: str, results: list[SearchResult], mode: Mode | None = None) -> Answer:
    """Turn ranked, mode-filtered results into a templated answer."""
    resolved_mode = mode or get_mode(None)
    guardrail = require_results(results)
    if not guardrail.allowed:
        return Answer(answer=NOT_FOUND_ANSWER, confidence=0.0)

    lowered = query.lower()
    confidence = min(results[0].score / 50, 1.0)
    top_files = unique_paths(results, limit=MAX_TOP_FILES)
    body: str | None = None
    for rule in INTENT_RULES:
        if not rule.matches(lowered):
            continue
        preferred = [result for result in results if rule.prefers(result)]
        context = IntentContext(query=query, results=results, preferred=preferred)
        body = rule.template(context)
        if body is None:
            continue
        if rule.confidence is not None:
            confidence = rule.confidence
        top_files = unique_paths(preferred + results, limit=MAX_TOP_FILES)
        break
    if body is None:
        body = _generic_answer(query, results)

    return Answer(
        answer=format_answer(body, results, resolved_mode),
        confidence=confidence,
        top_files=top_files,
        evidence=build_evidence(results),
        total_matches=len(results),
        languages=_languages(results),
    )
