from __future__ import annotations

"""API key authentication and role checks."""

from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from src_to_kb.app.settings import settings


@dataclass(frozen=True)
class AuthContext:
    """Resolved authentication context for the current request."""
    api_key: str | None
    role: str


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_api_key(request: Request) -> AuthContext:
    """Validate the API key or allow anonymous access when no keys are set.

    Keys in RAG_API_KEYS resolve to the admin role, keys in
    RAG_READER_API_KEYS to the reader role.
    """
    admin_keys = settings.api_keys
    reader_keys = settings.reader_api_keys
    if not (admin_keys or reader_keys):
        if settings.allow_anonymous:
            return AuthContext(api_key=None, role="admin")
        raise _unauthorized("API key required")
    api_key = _extract_api_key(request)
    if api_key is None:
        raise _unauthorized("Invalid or missing API key")
    if api_key in admin_keys:
        return AuthContext(api_key=api_key, role="admin")
    if api_key in reader_keys:
        return AuthContext(api_key=api_key, role="reader")
    raise _unauthorized("Invalid or missing API key")


def require_roles(auth: AuthContext, allowed: set[str]) -> None:
    """Enforce role-based access control."""
    if auth.role not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )


def _extract_api_key(request: Request) -> str | None:
    header_key = request.headers.get("x-api-key")
    if header_key:
        return header_key.strip()
    auth = request.headers.get("authorization")
    if not auth:
        return None
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return None
