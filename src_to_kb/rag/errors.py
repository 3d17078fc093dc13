from __future__ import annotations

"""Error taxonomy shared by the knowledge base components."""


class KnowledgeBaseError(RuntimeError):
    """Base class for knowledge base failures."""
    pass


class ConfigurationError(KnowledgeBaseError):
    """Raised when required configuration is missing or malformed."""
    pass


class TransportError(KnowledgeBaseError):
    """Raised when the remote search delegate cannot serve a request."""

    def __init__(
        self,
        message: str,
        stage: str = "search",
        attempts: int = 0,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.attempts = attempts
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "error": type(self).__name__,
            "message": str(self),
            "stage": self.stage,
            "attempts": self.attempts,
            "status_code": self.status_code,
        }


class RemoteAuthError(TransportError):
    """Raised when the remote delegate rejects our credentials (401/403)."""

    @property
    def retryable(self) -> bool:
        return False
