"""Process-wide object graph and FastAPI dependencies.

Clients and the report service are built once at startup and kept on
``app.state``; route handlers receive them through ``Depends``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

import httpx
from fastapi import Request

from app.core.config import Settings
from app.core.database import create_db_engine, create_session_factory, init_db
from app.repositories.report_repository import ReportRepository
from app.repositories.rest_report_repository import SupabaseReportRepository
from app.repositories.sql_report_repository import SqlReportRepository
from app.services.ai_gateway import MarketingAIGateway
from app.services.llm_client import LLMClient
from app.services.report_service import ReportService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    report_service: ReportService
    http_clients: List[httpx.AsyncClient] = field(default_factory=list)

    async def aclose(self) -> None:
        for client in self.http_clients:
            await client.aclose()
        await self.report_service.repository.close()


def build_repository(settings: Settings, clients: List[httpx.AsyncClient]) -> ReportRepository:
    if settings.storage_backend == "sql":
        engine = create_db_engine(settings.database_url, echo=settings.debug)
        init_db(engine)
        logger.info(f"[STARTUP] SQL storage: url={engine.url.render_as_string(hide_password=True)}")
        return SqlReportRepository(
            create_session_factory(engine),
            media_dir=settings.media_dir,
            public_base_url=settings.public_base_url,
        )

    storage_http = httpx.AsyncClient(timeout=settings.storage_timeout_seconds)
    clients.append(storage_http)
    logger.info(f"[STARTUP] REST storage: url={settings.supabase_url}, bucket={settings.storage_bucket}")
    return SupabaseReportRepository(settings, storage_http)


def build_services(settings: Settings) -> ServiceContainer:
    """Wire the LLM client, gateway, repository and report service."""
    clients: List[httpx.AsyncClient] = []
    llm_http = httpx.AsyncClient(timeout=settings.llm_timeout_seconds)
    clients.append(llm_http)

    gateway = MarketingAIGateway(LLMClient(settings, llm_http), settings)
    repository = build_repository(settings, clients)
    return ServiceContainer(ReportService(gateway, repository), clients)


def get_report_service(request: Request) -> ReportService:
    return request.app.state.services.report_service
