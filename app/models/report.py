"""Report ORM model (SQL storage backend)."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportRecord(Base):
    """Mirrors the ``reports`` table of the REST backend."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_category: Mapped[str] = mapped_column(String(255), nullable=False)
    product_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    one_sentence_pitch: Mapped[str | None] = mapped_column(Text, nullable=True)
    key_features: Mapped[str | None] = mapped_column(Text, nullable=True)
    # decimal strings, stored as text to keep the caller's formatting
    cost_of_goods: Mapped[str | None] = mapped_column(String(64), nullable=True)
    retail_price: Mapped[str | None] = mapped_column(String(64), nullable=True)
    promo_price: Mapped[str | None] = mapped_column(String(64), nullable=True)
    materials: Mapped[str | None] = mapped_column(Text, nullable=True)
    variants: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_audience: Mapped[str | None] = mapped_column(Text, nullable=True)
    competitors: Mapped[str | None] = mapped_column(Text, nullable=True)
    sales_channels: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    analysis: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<ReportRecord(id={self.id}, product_name={self.product_name})>"
