"""Application error taxonomy.

Every error carries an HTTP status and a machine-readable code so the
exception handlers in ``app.main`` can render a uniform ``ErrorResponse``.
"""
from __future__ import annotations

from typing import Any, List, Optional, Tuple


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """Raised when a product submission fails validation.

    ``field_errors`` holds one ``(field, reason)`` pair per offending field.
    """

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(
        self,
        field_errors: List[Tuple[str, str]],
        message: str = "Invalid product data",
    ) -> None:
        self.field_errors = list(field_errors)
        super().__init__(
            message,
            details=[{"field": field, "reason": reason} for field, reason in self.field_errors],
        )

    @property
    def fields(self) -> List[str]:
        return [field for field, _ in self.field_errors]


class UpstreamAnalysisError(AppError):
    """Raised when the language model call fails or returns unusable output."""

    status_code = 500
    code = "UPSTREAM_ANALYSIS_ERROR"


class UploadError(AppError):
    """Raised when the object store rejects an image upload."""

    status_code = 500
    code = "UPLOAD_ERROR"


class StorageError(AppError):
    """Raised when the report store returns an error."""

    status_code = 500
    code = "DATABASE_ERROR"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(f"{resource} not found")


class RateLimitError(AppError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing."""
