"""Pytest configuration for test suite."""
from __future__ import annotations

import base64
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to Python path
# This ensures 'app' module can be imported in tests
project_root = Path(__file__).parent.parent.resolve()
project_root_str = str(project_root)

if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

os.environ.setdefault("PYTHONPATH", project_root_str)

from app.core.config import Settings  # noqa: E402
from app.repositories.report_repository import ReportRepository, build_object_key  # noqa: E402
from app.schemas.product_schemas import NewReport, Report  # noqa: E402
from app.services.ai_gateway import ChatReply, MarketingAIGateway, OptimizedContent  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
PNG_DATA_URI = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")

SAMPLE_ANALYSIS: Dict[str, Any] = {
    "executiveSummary": "Strong fit for day hikers.",
    "swotAnalysis": {"strengths": ["Durable"], "weaknesses": [], "opportunities": [], "threats": []},
    "pricingAnalysis": {"grossMargin": "78%"},
}


class InMemoryReportRepository(ReportRepository):
    """Repository double that records call order and honours the contracts."""

    def __init__(self) -> None:
        self.reports: Dict[int, Report] = {}
        self.calls: List[str] = []
        self.uploads: List[Dict[str, Any]] = []
        self.fail_create: Optional[Exception] = None
        self.fail_upload: Optional[Exception] = None
        self._next_id = 1
        self._epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)

    async def create_report(self, report: NewReport) -> Report:
        self.calls.append("create")
        if self.fail_create is not None:
            raise self.fail_create
        report_id = self._next_id
        self._next_id += 1
        stored = Report.model_validate(
            {
                **report.model_dump(),
                "id": report_id,
                "created_at": self._epoch + timedelta(minutes=report_id),
            }
        )
        self.reports[report_id] = stored
        return stored

    async def list_reports(self) -> List[Report]:
        self.calls.append("list")
        return sorted(self.reports.values(), key=lambda r: r.created_at, reverse=True)

    async def get_report(self, report_id: int) -> Optional[Report]:
        self.calls.append("get")
        return self.reports.get(report_id)

    async def delete_report(self, report_id: int) -> None:
        self.calls.append("delete")
        self.reports.pop(report_id, None)

    async def upload_image(self, file_bytes: bytes, original_name: str, mime_type: str) -> str:
        self.calls.append("upload")
        if self.fail_upload is not None:
            raise self.fail_upload
        key = build_object_key(original_name, 1700000000000 + len(self.uploads))
        self.uploads.append({"key": key, "bytes": file_bytes, "mime_type": mime_type})
        return f"https://cdn.example.test/report-images/{key}"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        llm_api_key="test-llm-key",
        llm_base_url="https://llm.example.test/v1/chat/completions",
        supabase_url="https://project.supabase.test",
        supabase_key="service-role-key",
        storage_bucket="report-images",
        log_dir="logs",
    )


@pytest.fixture
def product_payload() -> Dict[str, Any]:
    return {
        "productName": "Trail Flask",
        "productCategory": "Outdoor gear",
        "oneSentencePitch": "An insulated flask that clips to any pack.",
        "keyFeatures": "Keeps drinks cold 24h, carabiner lid",
        "costOfGoods": "6.50",
        "retailPrice": "29.99",
        "materials": "Stainless steel",
        "targetAudience": "Day hikers",
        "competitors": "Hydro Flask, Yeti",
        "salesChannels": ["Online", "Retail"],
    }


@pytest.fixture
def repository() -> InMemoryReportRepository:
    return InMemoryReportRepository()


@pytest.fixture
def gateway() -> MagicMock:
    """Gateway double with canned async replies."""
    mock = MagicMock(spec=MarketingAIGateway)
    mock.analyze = AsyncMock(side_effect=lambda product: dict(SAMPLE_ANALYSIS))
    mock.analyze_image = AsyncMock(return_value="Clean, outdoorsy visual identity.")
    mock.chat = AsyncMock(return_value=ChatReply(message="Report 1 has the best margin.", related_report_ids=[1]))
    mock.generate_content_ideas = AsyncMock(return_value={"hashtags": {"trending": ["#hike"]}})
    mock.optimize_content = AsyncMock(
        return_value=OptimizedContent(result="Cold drinks, all trail long.", optimization_focus="Clarity")
    )
    return mock

