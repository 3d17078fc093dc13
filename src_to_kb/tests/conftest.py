from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("RAG_ALLOW_ANONYMOUS", "true")
os.environ.pop("RAG_API_KEYS", None)
os.environ.pop("RAG_READER_API_KEYS", None)
os.environ.pop("EXTERNAL_KB_URL", None)
os.environ.pop("EXTERNAL_KB_SEARCH_URL", None)
os.environ.pop("EXTERNAL_KB_API_KEY", None)
os.environ.setdefault("RAG_METRICS_ENABLED", "true")


@pytest.fixture
def anyio_backend() -> str:
    """The remote client is built on asyncio, so async tests run on asyncio only."""
    return "asyncio"


@pytest.fixture
def sample_repo(tmp_path: Path) -> Path:
    """Small source tree with code, docs and an excluded dependency folder."""
    (tmp_path / "src" / "auth").mkdir(parents=True)
    (tmp_path / "src" / "api").mkdir(parents=True)
    (tmp_path / "docs").mkdir()
    (tmp_path / "node_modules" / "lib").mkdir(parents=True)
    (tmp_path / "src" / "auth" / "login.js").write_text(
        "// login handler\n"
        "const jwt = require('jsonwebtoken');\n"
        "function login(user, password) {\n"
        "  return jwt.sign({ id: user.id }, SECRET);\n"
        "}\n",
        encoding="utf-8",
    )
    (tmp_path / "src" / "auth" / "reset_password.py").write_text(
        "def reset_password(user, token):\n"
        "    \"\"\"Reset a password after the token has been verified.\"\"\"\n"
        "    user.password = hash_password(token.new_password)\n"
        "    return user\n",
        encoding="utf-8",
    )
    (tmp_path / "src" / "api" / "routes.ts").write_text(
        "router.get('/users', listUsers);\n"
        "router.post('/login', login);\n",
        encoding="utf-8",
    )
    (tmp_path / "docs" / "README.md").write_text(
        "# Guide\n\nUse the login page to sign in.\n",
        encoding="utf-8",
    )
    (tmp_path / "node_modules" / "lib" / "index.js").write_text(
        "module.exports = function login() {};\n",
        encoding="utf-8",
    )
    (tmp_path / "image.png").write_bytes(b"\x89PNG\r\n")
    return tmp_path
