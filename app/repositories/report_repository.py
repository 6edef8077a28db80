"""Report repository interface and storage wire-format helpers.

Canonical records use camelCase keys; the report table uses snake_case
columns and stores ``sales_channels`` as a PostgreSQL text array.
"""
from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from app.schemas.product_schemas import NewReport, Report
from app.services.input_normalizer import NumericField, StringArrayField

logger = logging.getLogger(__name__)

# canonical attribute -> table column
COLUMN_NAMES: Dict[str, str] = {
    "product_name": "product_name",
    "product_category": "product_category",
    "product_image": "product_image",
    "one_sentence_pitch": "one_sentence_pitch",
    "key_features": "key_features",
    "cost_of_goods": "cost_of_goods",
    "retail_price": "retail_price",
    "promo_price": "promo_price",
    "materials": "materials",
    "variants": "variants",
    "target_audience": "target_audience",
    "competitors": "competitors",
    "sales_channels": "sales_channels",
    "analysis": "analysis",
}

ARRAY_COLUMNS = ("sales_channels",)
PRICE_COLUMNS = ("cost_of_goods", "retail_price", "promo_price")
DEFAULT_IMAGE_NAME = "image"


class ReportRepository(ABC):
    """Sole writer of reports. Implementations must honour these contracts:

    - ``list_reports`` returns newest first
    - ``get_report`` returns None for a missing id
    - ``delete_report`` of a missing id is a silent no-op
    """

    @abstractmethod
    async def create_report(self, report: NewReport) -> Report:
        ...

    @abstractmethod
    async def list_reports(self) -> List[Report]:
        ...

    @abstractmethod
    async def get_report(self, report_id: int) -> Optional[Report]:
        ...

    @abstractmethod
    async def delete_report(self, report_id: int) -> None:
        ...

    @abstractmethod
    async def upload_image(self, file_bytes: bytes, original_name: str, mime_type: str) -> str:
        """Store an image and return its public URL."""

    async def close(self) -> None:
        """Release client resources; a no-op unless the backend holds any."""


def to_postgres_array(values: List[str]) -> str:
    """Encode strings as a PostgreSQL array literal: ``{"a","b \\"c\\""}``."""
    quoted = []
    for value in values:
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        quoted.append(f'"{escaped}"')
    return "{" + ",".join(quoted) + "}"


def parse_postgres_array(literal: str) -> List[str]:
    """Decode a one-dimensional PostgreSQL text array literal."""
    body = literal.strip()
    if not (body.startswith("{") and body.endswith("}")):
        raise ValueError(f"Not an array literal: {literal!r}")
    body = body[1:-1]

    items: List[str] = []
    current: List[str] = []
    in_quotes = False
    was_quoted = False
    i = 0
    while i < len(body):
        char = body[i]
        if in_quotes:
            if char == "\\" and i + 1 < len(body):
                i += 1
                current.append(body[i])
            elif char == '"':
                in_quotes = False
            else:
                current.append(char)
        elif char == '"':
            in_quotes = True
            was_quoted = True
        elif char == ",":
            items.append(_array_item(current, was_quoted))
            current, was_quoted = [], False
        else:
            current.append(char)
        i += 1
    if current or was_quoted or items:
        items.append(_array_item(current, was_quoted))
    return [item for item in items if item is not None]


def _array_item(chars: List[str], was_quoted: bool) -> Optional[str]:
    text = "".join(chars)
    if not was_quoted:
        text = text.strip()
        if text.upper() == "NULL":
            return None
    return text


def decode_sales_channels(value: Any) -> List[str]:
    """Read channels back from a JSON array, array literal, or comma list."""
    if isinstance(value, str) and value.strip().startswith("{"):
        try:
            return parse_postgres_array(value)
        except ValueError:
            logger.warning(f"[REPOSITORY] Malformed sales_channels literal: {value!r}")
    return StringArrayField.decode(value)


def report_to_row(report: NewReport) -> Dict[str, Any]:
    """
    Serialize a new report to table columns.

    Unset optional fields are written as explicit nulls, never omitted.
    """
    row: Dict[str, Any] = {}
    for attribute, column in COLUMN_NAMES.items():
        value = getattr(report, attribute)
        if column in ARRAY_COLUMNS:
            row[column] = to_postgres_array(list(value or []))
        else:
            row[column] = value
    return row


def row_to_report(row: Mapping[str, Any]) -> Report:
    """Deserialize a table row back to a canonical Report."""
    data: Dict[str, Any] = {"id": row.get("id"), "created_at": row.get("created_at")}
    for attribute, column in COLUMN_NAMES.items():
        value = row.get(column)
        if column in ARRAY_COLUMNS:
            value = decode_sales_channels(value)
        elif column in PRICE_COLUMNS:
            value = NumericField.decode(value)
        elif column == "analysis" and isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning(f"[REPOSITORY] Unparseable analysis for report id={row.get('id')}")
                value = None
        data[attribute] = value
    return Report.model_validate(data)


def sanitize_filename(original_name: str) -> str:
    """
    Reduce a client filename to ``[A-Za-z0-9.-]``.

    Other characters become ``-``. Any run of separators collapses to one
    character: ``.`` when the run holds a dot, so extensions survive, else
    ``-``. Separators are trimmed from both ends. Falls back to ``"image"``
    when nothing usable remains.
    """
    name = re.sub(r"[^A-Za-z0-9.-]", "-", original_name or "")
    name = re.sub(r"[-.]{2,}", lambda m: "." if "." in m.group(0) else "-", name)
    name = name.strip("-.")
    return name or DEFAULT_IMAGE_NAME


def build_object_key(original_name: str, created_ms: int) -> str:
    """Timestamp-prefixed object key, unique per upload."""
    return f"{created_ms}-{sanitize_filename(original_name)}"
