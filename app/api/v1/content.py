"""Content ideation endpoints for saved reports."""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.core.dependencies import get_report_service
from app.schemas.chat_schemas import (
    GenerateContentRequest,
    OptimizeContentRequest,
    OptimizeContentResponse,
)
from app.services.report_service import ReportService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["content"])


@router.post("/generate-content", response_model=Dict[str, Any])
async def generate_content(
    request: GenerateContentRequest,
    service: ReportService = Depends(get_report_service),
) -> Dict[str, Any]:
    """Hashtags, captions, storylines, hooks and CTAs for a report."""
    logger.info(f"[API] POST /generate-content - report_id={request.report_id}")
    return await service.generate_content_ideas(request.report_id)


@router.post("/optimize-content", response_model=OptimizeContentResponse)
async def optimize_content(
    request: OptimizeContentRequest,
    service: ReportService = Depends(get_report_service),
) -> OptimizeContentResponse:
    logger.info(
        f"[API] POST /optimize-content - report_id={request.report_id}, category={request.category}"
    )
    optimized = await service.optimize_content(
        request.report_id, request.category, request.selection
    )
    return OptimizeContentResponse(
        result=optimized.result,
        optimization_focus=optimized.optimization_focus,
    )
