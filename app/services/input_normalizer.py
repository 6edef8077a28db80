"""Normalize loosely-typed product submissions into the canonical shape.

Form encoders, multipart bodies and JSON callers all encode the same logical
fields differently. The normalizer only reshapes: it never rejects input,
that is the validator's job.
"""
from __future__ import annotations

import json
import logging
import re
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

PRODUCT_DATA_ENVELOPE = "productData"

NUMERIC_FIELDS = ("costOfGoods", "retailPrice", "promoPrice")

TEXT_FIELDS = (
    "productName",
    "productCategory",
    "productImage",
    "oneSentencePitch",
    "keyFeatures",
    "materials",
    "variants",
    "targetAudience",
    "competitors",
)

# Fields where pasted browser console output has shown up in the past.
DEBUG_CLEANUP_FIELDS = ("materials", "variants", "targetAudience", "competitors")

DEBUG_MARKERS = (
    "Before FormData append",
    "FormData entries:",
    "productImageFile:",
    "console.log",
    "[DEBUG]",
)

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)

_NOT_JSON = object()


def _try_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return _NOT_JSON


class NumericField:
    """Decoder for price-like fields: number or string in, string or None out."""

    @staticmethod
    def decode(value: Any) -> Optional[str]:
        """
        Normalize a numeric-looking value to its string form.

        Rules:
        - None and blank strings are "not provided" (None)
        - ints and Decimals keep their exact textual value ("0" stays "0")
        - floats use the shortest round-tripping representation
        - strings are trimmed
        - anything else passes through as ``str`` for the validator to judge

        Args:
            value: Raw field value

        Returns:
            String representation, or None when the field is unset
        """
        if value is None:
            return None
        if isinstance(value, bool):
            return str(value)
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            return repr(value)
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return str(value)


class StringArrayField:
    """Decoder for list-of-strings fields such as salesChannels."""

    @classmethod
    def decode(cls, value: Any) -> List[str]:
        """
        Coerce a sales-channel style value to a list of trimmed strings.

        Accepted shapes:
        - list of plain strings
        - list containing JSON-encoded sub-lists (spliced in, one level)
        - JSON-encoded string
        - comma-separated string

        Anything that cannot be coerced yields an empty list.
        """
        if value is None:
            return []
        if isinstance(value, str):
            return cls._from_string(value)
        if isinstance(value, (list, tuple)):
            return cls._from_sequence(value)
        logger.debug(f"[NORMALIZER] Unexpected list field type: {type(value).__name__}")
        return []

    @classmethod
    def _from_string(cls, text: str) -> List[str]:
        stripped = text.strip()
        if not stripped:
            return []
        decoded = _try_json(stripped)
        if isinstance(decoded, list):
            return cls._from_sequence(decoded)
        if isinstance(decoded, str):
            return cls._split_commas(decoded)
        return cls._split_commas(stripped)

    @classmethod
    def _from_sequence(cls, items: Any) -> List[str]:
        result: List[str] = []
        for item in items:
            if isinstance(item, str):
                decoded = _try_json(item.strip())
                if isinstance(decoded, list):
                    result.extend(cls._scalar_members(decoded))
                elif isinstance(decoded, str):
                    result.append(decoded)
                else:
                    # not JSON, or JSON that isn't text: keep the literal
                    result.append(item)
            elif isinstance(item, (list, tuple)):
                result.extend(cls._scalar_members(item))
            elif item is not None and not isinstance(item, dict):
                result.append(str(item))
        return cls._clean(result)

    @staticmethod
    def _scalar_members(members: Any) -> List[str]:
        return [
            m if isinstance(m, str) else str(m)
            for m in members
            if m is not None and not isinstance(m, (list, tuple, dict))
        ]

    @classmethod
    def _split_commas(cls, text: str) -> List[str]:
        return cls._clean(text.split(","))

    @staticmethod
    def _clean(values: List[str]) -> List[str]:
        return [v.strip() for v in values if v and v.strip()]


class InputNormalizer:
    """Reshape raw request bodies into the keys and types ProductInput expects."""

    @staticmethod
    def flatten_envelope(raw: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Lift fields out of a nested ``productData`` object.

        The envelope may be a dict or a JSON string encoding one. Its values
        win over top-level keys of the same name; the envelope key is dropped.
        """
        record = dict(raw)
        if PRODUCT_DATA_ENVELOPE not in record:
            return record

        envelope = record.pop(PRODUCT_DATA_ENVELOPE)
        if isinstance(envelope, str):
            decoded = _try_json(envelope)
            envelope = decoded if isinstance(decoded, dict) else None
        if isinstance(envelope, dict):
            record.update(envelope)
            logger.debug(
                f"[NORMALIZER] Flattened productData envelope: {sorted(envelope.keys())}"
            )
        else:
            logger.debug("[NORMALIZER] Discarded unusable productData envelope")
        return record

    @staticmethod
    def strip_debug_output(value: Any) -> Any:
        """Truncate text that captured console output to its first line."""
        if not isinstance(value, str):
            return value
        if not any(marker in value for marker in DEBUG_MARKERS):
            return value
        lines = value.splitlines()
        first_line = lines[0].strip() if lines else ""
        logger.warning("[NORMALIZER] Dropped pasted debug output from free-text field")
        return first_line

    @staticmethod
    def strip_scripts(value: Any) -> Any:
        """Remove complete ``<script>...</script>`` blocks from text."""
        if not isinstance(value, str):
            return value
        cleaned = _SCRIPT_BLOCK.sub("", value)
        if cleaned != value:
            logger.warning("[NORMALIZER] Removed script block from product field")
        return cleaned

    @classmethod
    def normalize(cls, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Normalize a complete product submission.

        Args:
            raw: Untyped mapping from a JSON body or a multipart form

        Returns:
            New dict; product fields reshaped, other keys untouched
        """
        record = cls.flatten_envelope(raw)

        for field in TEXT_FIELDS:
            if field in record:
                record[field] = cls.strip_scripts(record[field])

        for field in DEBUG_CLEANUP_FIELDS:
            if field in record:
                record[field] = cls.strip_debug_output(record[field])

        for field in TEXT_FIELDS:
            value = record.get(field)
            if isinstance(value, str) and not value.strip():
                del record[field]

        for field in NUMERIC_FIELDS:
            if field not in record:
                continue
            decoded = NumericField.decode(record[field])
            if decoded is None:
                del record[field]
            else:
                record[field] = decoded

        channels = StringArrayField.decode(record.get("salesChannels"))
        cleaned_channels = (cls.strip_scripts(c).strip() for c in channels)
        record["salesChannels"] = [c for c in cleaned_channels if c]

        logger.debug(
            f"[NORMALIZER] Normalized product input: "
            f"productName={record.get('productName')!r}, "
            f"salesChannels={record['salesChannels']}"
        )
        return record


def normalize_product_input(raw: Mapping[str, Any]) -> Dict[str, Any]:
    return InputNormalizer.normalize(raw)
