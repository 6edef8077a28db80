"""Chat endpoint over the saved reports."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.core.dependencies import get_report_service
from app.schemas.chat_schemas import ChatRequest, ChatResponse
from app.services.report_service import ReportService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    service: ReportService = Depends(get_report_service),
) -> ChatResponse:
    logger.info(
        f"[API] POST /chat - history_turns={len(request.conversation_history)}"
    )
    reply = await service.chat(request.message, request.conversation_history)
    return ChatResponse(message=reply.message, related_reports=reply.related_report_ids)
