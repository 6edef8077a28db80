"""API router aggregating all endpoint modules."""
from fastapi import APIRouter, Depends

from app.api.v1 import analysis, chat, content, reports
from app.core.config import Settings, get_settings
from app.schemas.base_schemas import HealthResponse

router = APIRouter()
router.include_router(reports.router)
router.include_router(analysis.router)
router.include_router(chat.router)
router.include_router(content.router)


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(version=settings.app_version)
