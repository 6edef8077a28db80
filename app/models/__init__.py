"""ORM models for the application."""
from app.models.report import ReportRecord

__all__ = [
    "ReportRecord",
]
