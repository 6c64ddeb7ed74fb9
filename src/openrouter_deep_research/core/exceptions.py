"""Domain-specific exception hierarchy for consistent error handling."""

from __future__ import annotations

from typing import Any


class DeepResearchError(Exception):
    """Base exception for all expected deep research errors."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Serialise the error into a structured payload."""

        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class APIError(DeepResearchError):
    """Raised when the LLM gateway answers with a non-2xx response.

    The request and response are carried verbatim so the caller can show
    exactly what was sent and what came back.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str,
        method: str,
        status_code: int | None = None,
        request_body: Any = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="API_ERROR",
            details={"url": url, "method": method, "status_code": status_code},
        )
        self.url = url
        self.method = method
        self.status_code = status_code
        self.request_body = request_body
        self.response_body = response_body

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["request_body"] = self.request_body
        payload["response_body"] = self.response_body
        return payload


class ResponseFormatError(DeepResearchError):
    """Raised when a successful gateway response does not have the expected shape."""

    def __init__(self, *, url: str, reason: str) -> None:
        super().__init__(
            message=f"Unexpected response from {url}: {reason}",
            error_code="RESPONSE_FORMAT_ERROR",
            details={"url": url, "reason": reason},
        )


class MissingUserQueryError(DeepResearchError):
    """Raised when a run has no user message to research."""

    def __init__(self, reason: str = "No user message found") -> None:
        super().__init__(
            message=f"Cannot run deep research: {reason}",
            error_code="MISSING_USER_QUERY",
            details={"reason": reason},
        )


class ResearchCancelledError(DeepResearchError):
    """Raised when the caller's cancellation event fires during an LLM call."""

    def __init__(self, model: str | None = None) -> None:
        details = {"model": model} if model else {}
        super().__init__(
            message="Research was cancelled",
            error_code="RESEARCH_CANCELLED",
            details=details,
        )


class InvalidConfigError(DeepResearchError):
    """Raised when a run is started with settings it cannot honour."""

    def __init__(self, setting: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid setting {setting}: {reason}",
            error_code="INVALID_CONFIG",
            details={"setting": setting, "reason": reason},
        )


class ModelCatalogError(DeepResearchError):
    """Raised when the model list cannot be fetched."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Failed to fetch models: {reason}",
            error_code="MODEL_CATALOG_ERROR",
            details={"reason": reason},
        )


__all__ = [
    "DeepResearchError",
    "APIError",
    "ResponseFormatError",
    "MissingUserQueryError",
    "ResearchCancelledError",
    "InvalidConfigError",
    "ModelCatalogError",
]
