"""Validation of normalized product submissions.

``validate_product_input`` is pure: it either returns a ``ProductInput`` or
raises ``ValidationError`` listing every offending field.
"""
from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Tuple

from pydantic import ValidationError as PydanticValidationError

from app.core.errors import ValidationError
from app.schemas.product_schemas import ProductInput

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS: Dict[str, str] = {
    "productName": "Product name is required",
    "productCategory": "Product category is required",
    "oneSentencePitch": "One sentence pitch is required",
    "keyFeatures": "Key features are required",
    "materials": "Materials are required",
    "targetAudience": "Target audience is required",
    "competitors": "Competitors are required",
}

OPTIONAL_TEXT_FIELDS = ("productImage", "variants")

REQUIRED_PRICE_FIELDS: Dict[str, str] = {
    "costOfGoods": "Cost of goods",
    "retailPrice": "Retail price",
}

# plain decimal notation, e.g. "29.99"
_PRICE_PATTERN = re.compile(r"[0-9]+(\.[0-9]+)?")


def _parse_price(value: Any) -> Decimal | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not _PRICE_PATTERN.fullmatch(text):
        return None
    return Decimal(text)


def _check_text(record: Mapping[str, Any], errors: List[Tuple[str, str]]) -> None:
    for field, missing_reason in REQUIRED_TEXT_FIELDS.items():
        value = record.get(field)
        if value is None:
            errors.append((field, missing_reason))
        elif not isinstance(value, str):
            errors.append((field, "Must be text"))
        elif not value.strip():
            errors.append((field, missing_reason))

    for field in OPTIONAL_TEXT_FIELDS:
        value = record.get(field)
        if value is not None and not isinstance(value, str):
            errors.append((field, "Must be text"))


def _check_prices(record: Mapping[str, Any], errors: List[Tuple[str, str]]) -> None:
    for field, label in REQUIRED_PRICE_FIELDS.items():
        value = record.get(field)
        if value is None:
            errors.append((field, f"{label} is required"))
        elif _parse_price(value) is None:
            errors.append((field, f"{label} must be a non-negative number"))

    promo = record.get("promoPrice")
    if promo is not None and _parse_price(promo) is None:
        errors.append(("promoPrice", "Promo price must be a non-negative number"))


def _check_channels(record: Mapping[str, Any], errors: List[Tuple[str, str]]) -> None:
    channels = record.get("salesChannels")
    if not isinstance(channels, (list, tuple)) or not channels:
        errors.append(("salesChannels", "At least one sales channel is required"))
    elif not all(isinstance(c, str) and c.strip() for c in channels):
        errors.append(("salesChannels", "Sales channels must be non-empty text"))


def validate_product_input(record: Mapping[str, Any]) -> ProductInput:
    """
    Judge a normalized record against the ProductInput business rules.

    Args:
        record: Output of ``InputNormalizer.normalize`` (camelCase keys)

    Returns:
        ProductInput with the record's values

    Raises:
        ValidationError: with one (field, reason) pair per failing field
    """
    errors: List[Tuple[str, str]] = []
    _check_text(record, errors)
    _check_prices(record, errors)
    _check_channels(record, errors)

    if errors:
        logger.info(f"[VALIDATOR] Rejected product input: fields={[f for f, _ in errors]}")
        raise ValidationError(errors)

    try:
        return ProductInput.model_validate(_known_fields(record))
    except PydanticValidationError as exc:
        field_errors = [
            (".".join(str(part) for part in err["loc"]) or "body", err["msg"])
            for err in exc.errors()
        ]
        raise ValidationError(field_errors) from exc


def _known_fields(record: Mapping[str, Any]) -> Dict[str, Any]:
    aliases = {field.alias or name for name, field in ProductInput.model_fields.items()}
    return {key: value for key, value in record.items() if key in aliases}
