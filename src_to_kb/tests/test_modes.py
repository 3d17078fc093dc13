from __future__ import annotations

import logging

import pytest

from src_to_kb.rag.errors import ConfigurationError
from src_to_kb.rag.modes import (
    CODE_REMOVED_PLACEHOLDER,
    MODES,
    filter_results,
    format_answer,
    get_mode,
    list_modes,
)
from src_to_kb.rag.types import SearchResult


def make_result(path: str, language: str | None = "JavaScript", content: str = "code()") -> SearchResult:
    return SearchResult(
        document_id=f"id-{path}",
        document_path=path,
        document_language=language,
        chunk_id=f"id-{path}_chunk_0",
        score=1,
        start_line=0,
        end_line=0,
        full_content=content,
        preview=content[:200],
    )


def test_enduser_drops_test_files() -> None:
    results = [make_result("src/auth.test.js"), make_result("src/auth.js")]

    filtered = filter_results(results, get_mode("enduser"))

    assert [result.document_path for result in filtered] == ["src/auth.js"]


def test_exclusion_is_case_insensitive() -> None:
    results = [make_result("src/Internal/Secrets.js"), make_result("docs/readme.MD")]

    enduser = filter_results(results, get_mode("enduser"))
    copilot = filter_results(results, get_mode("copilot"))

    assert "src/Internal/Secrets.js" not in [result.document_path for result in enduser]
    assert "docs/readme.MD" not in [result.document_path for result in copilot]


def test_no_excluded_result_survives_any_mode() -> None:
    results = [
        make_result(path)
        for path in (
            "src/app.js",
            "src/app.spec.ts",
            "src/__tests__/x.js",
            "types/index.d.ts",
            "README.md",
            "CHANGELOG.txt",
            "src/debug/log.js",
        )
    ]
    for mode in MODES.values():
        for result in filter_results(results, mode):
            assert not any(pattern.search(result.document_path) for pattern in mode.exclude_patterns)


def test_priority_results_move_ahead_in_stable_order() -> None:
    results = [
        make_result("src/a.js"),
        make_result("tests/config_loader.js"),
        make_result("src/b.js"),
        make_result("docs/api/usage.js"),
    ]

    filtered = filter_results(results, get_mode("developer"))

    assert [result.document_path for result in filtered] == [
        "tests/config_loader.js",
        "src/a.js",
        "src/b.js",
        "docs/api/usage.js",
    ]


def test_unknown_mode_falls_back_to_developer(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        mode = get_mode("wizard")

    assert mode.key == "developer"
    assert "mode_fallback" in caplog.text


def test_strict_lookup_rejects_unknown_mode() -> None:
    with pytest.raises(ConfigurationError):
        get_mode("wizard", strict=True)


def test_list_modes_names_all_modes() -> None:
    assert [entry["key"] for entry in list_modes()] == ["enduser", "developer", "copilot"]


def test_enduser_format_removes_code_and_source_trailer() -> None:
    answer = "Intro\n\n```js\nconst a = 1;\n```\n\nSource files: src/a.js"

    formatted = format_answer(answer, [], get_mode("enduser"))

    assert CODE_REMOVED_PLACEHOLDER in formatted
    assert "const a = 1" not in formatted
    assert "Source files:" not in formatted


def test_copilot_format_appends_two_code_examples() -> None:
    results = [
        make_result("src/a.js", content="\n".join(f"line {n}" for n in range(30))),
        make_result("src/b.py", language="Python", content="print('b')"),
        make_result("src/c.js", content="c()"),
    ]

    formatted = format_answer("Answer", results, get_mode("copilot"))

    assert formatted.startswith("Answer\n\nCode Examples:\n")
    assert "```javascript\n// From: src/a.js" in formatted
    assert "```python\n// From: src/b.py" in formatted
    assert "src/c.js" not in formatted
    assert "line 19" in formatted
    assert "line 20" not in formatted


def test_developer_format_is_unchanged() -> None:
    answer = "Body\n\n```js\nx\n```\n\nSource files: a.js"

    assert format_answer(answer, [make_result("a.js")], get_mode("developer")) == answer


def test_style_hints_are_described_but_leave_prose_alone() -> None:
    mode = get_mode("enduser")
    answer = "The data model is defined in `src/models/user.js`; the database schema lives there."

    assert "database" in mode.describe()["avoid_terms"]
    assert format_answer(answer, [], mode) == answer
