"""Request parsing shared by the report and analysis endpoints."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import Request
from starlette.datastructures import UploadFile

from app.core.config import Settings
from app.core.errors import ValidationError
from app.services.report_service import UploadedImage

logger = logging.getLogger(__name__)

IMAGE_FIELDS = ("productImage", "image")


async def read_image_upload(upload: UploadFile, settings: Settings, field: str = "image") -> UploadedImage:
    """
    Read an uploaded file, enforcing the image MIME type and size limit.

    Raises:
        ValidationError: not ``image/*``, empty, or larger than ``max_upload_bytes``
    """
    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationError([(field, "Only image files are allowed")], message="Invalid image upload")

    content = await upload.read(settings.max_upload_bytes + 1)
    if len(content) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise ValidationError([(field, f"Image exceeds the {limit_mb}MB limit")], message="Invalid image upload")
    if not content:
        raise ValidationError([(field, "Image file is empty")], message="Invalid image upload")

    logger.info(f"[API] Image received: name={upload.filename}, type={content_type}, bytes={len(content)}")
    return UploadedImage(content=content, filename=upload.filename or "image", content_type=content_type)


def parse_analysis(value: Any) -> Optional[Dict[str, Any]]:
    """Accept the analysis document as an object or as a JSON string."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as exc:
            raise ValidationError([("analysis", "Analysis must be valid JSON")]) from exc
    if not isinstance(value, dict):
        raise ValidationError([("analysis", "Analysis must be a JSON object")])
    return value


async def parse_report_submission(
    request: Request, settings: Settings
) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]], Optional[UploadedImage]]:
    """
    Split a report submission into raw product fields, analysis and image.

    Multipart forms may carry the image as a ``productImage`` or ``image``
    file part; repeated form fields (``salesChannels``) arrive as lists.
    JSON bodies may wrap the fields in ``productData`` or send them flat.
    """
    content_type = request.headers.get("content-type", "")
    image: Optional[UploadedImage] = None

    if content_type.startswith("multipart/form-data") or content_type.startswith(
        "application/x-www-form-urlencoded"
    ):
        form = await request.form()
        raw: Dict[str, Any] = {}
        for key in form.keys():
            values = form.getlist(key)
            files = [value for value in values if isinstance(value, UploadFile)]
            if files:
                if key in IMAGE_FIELDS and image is None:
                    image = await read_image_upload(files[0], settings, field=key)
                continue
            raw[key] = values if len(values) > 1 else values[0]
        analysis = parse_analysis(raw.pop("analysis", None))
        return raw, analysis, image

    try:
        body = await request.json()
    except ValueError as exc:
        raise ValidationError([("body", "Request body must be valid JSON")]) from exc
    if not isinstance(body, dict):
        raise ValidationError([("body", "Request body must be a JSON object")])

    raw = dict(body)
    analysis = parse_analysis(raw.pop("analysis", None))
    return raw, analysis, image


def parse_report_id(value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError([("id", "Invalid report ID")], message="Invalid report ID") from exc
