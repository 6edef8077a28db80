"""Analysis endpoints: full product analysis and standalone image upload."""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, File, Response, UploadFile

from app.api.v1.uploads import read_image_upload
from app.core.config import Settings, get_settings
from app.core.dependencies import get_report_service
from app.core.errors import ValidationError
from app.schemas.product_schemas import ImageUploadResponse
from app.services.ai_gateway import image_data_uri
from app.services.report_service import ReportService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])

WARNING_HEADER = "X-Analysis-Warning"


@router.post("/analyze", response_model=Dict[str, Any])
async def analyze_product(
    response: Response,
    payload: Any = Body(...),
    service: ReportService = Depends(get_report_service),
) -> Dict[str, Any]:
    """
    Generate a marketing analysis without saving it.

    The body is normalized before validation, so loosely typed values such
    as numeric prices or a comma-separated ``salesChannels`` string are
    accepted. A non-fatal image problem is reported in the
    ``X-Analysis-Warning`` header.
    """
    if not isinstance(payload, dict):
        raise ValidationError([("body", "Request body must be a JSON object")])

    logger.info("[API] POST /analyze - Request received")
    outcome = await service.analyze_only(payload)
    if outcome.warning:
        response.headers[WARNING_HEADER] = outcome.warning
    return outcome.analysis


@router.post("/upload-image", response_model=ImageUploadResponse)
async def upload_image(
    image: UploadFile = File(...),
    service: ReportService = Depends(get_report_service),
    settings: Settings = Depends(get_settings),
) -> ImageUploadResponse:
    """Return the image as a data URI plus a visual critique ("" on failure)."""
    uploaded = await read_image_upload(image, settings)
    critique = await service.analyze_image(uploaded)
    return ImageUploadResponse(
        image_url=image_data_uri(uploaded.content, uploaded.content_type),
        image_analysis=critique,
    )
