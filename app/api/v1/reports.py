"""Report CRUD endpoints."""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Request, status

from app.api.v1.uploads import parse_report_id, parse_report_submission
from app.core.config import Settings, get_settings
from app.core.dependencies import get_report_service
from app.schemas.product_schemas import MessageResponse, Report
from app.services.report_service import ReportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("", response_model=List[Report])
async def list_reports(service: ReportService = Depends(get_report_service)) -> List[Report]:
    """All saved reports, newest first."""
    reports = await service.list_reports()
    logger.info(f"[API] GET /reports -> {len(reports)} reports")
    return reports


@router.get("/{report_id}", response_model=Report)
async def get_report(
    report_id: str, service: ReportService = Depends(get_report_service)
) -> Report:
    return await service.get_report(parse_report_id(report_id))


@router.delete("/{report_id}", response_model=MessageResponse)
async def delete_report(
    report_id: str, service: ReportService = Depends(get_report_service)
) -> MessageResponse:
    """Delete a report. Deleting an id that does not exist also succeeds."""
    await service.delete_report(parse_report_id(report_id))
    return MessageResponse(message="Report deleted successfully")


@router.post("", response_model=Report, status_code=status.HTTP_201_CREATED)
async def create_report(
    request: Request,
    service: ReportService = Depends(get_report_service),
    settings: Settings = Depends(get_settings),
) -> Report:
    """
    Save a product and its analysis.

    Accepts multipart form data (fields, optional ``productImage``/``image``
    file, ``analysis`` as a JSON string) or a JSON body
    (``{productData, analysis}`` or flat fields plus ``analysis``).
    """
    logger.info("[API] POST /reports - Request received")
    raw, analysis, image = await parse_report_submission(request, settings)
    report = await service.create_report(raw, analysis=analysis, image=image)
    logger.info(f"[API] ✓ Report created: id={report.id}")
    return report
