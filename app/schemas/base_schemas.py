"""Base schemas for common response patterns."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class ErrorResponse(BaseModel):
    """Error response model.

    ``error_code`` is machine-readable; ``message`` is meant for humans.
    """

    success: bool = False
    message: str
    error_code: str | None = None
    details: Any | None = None
