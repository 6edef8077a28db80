"""Tests for the Supabase-backed repository using httpx.MockTransport."""
from __future__ import annotations

import json
from typing import Callable, List

import httpx
import pytest

from app.core.errors import StorageError, UploadError
from app.repositories.rest_report_repository import SupabaseReportRepository
from app.schemas.product_schemas import NewReport

TABLE_URL = "https://project.supabase.test/rest/v1/reports"


def _repository(settings, handler: Callable[[httpx.Request], httpx.Response]) -> SupabaseReportRepository:
    return SupabaseReportRepository(settings, httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _row(report_id: int, created_at: str, **overrides) -> dict:
    row = {
        "id": report_id,
        "created_at": created_at,
        "product_name": f"Product {report_id}",
        "product_category": "Outdoor gear",
        "product_image": None,
        "cost_of_goods": "6.50",
        "retail_price": "29.99",
        "promo_price": None,
        "sales_channels": '{"Online","Retail"}',
        "analysis": {"executiveSummary": "Good"},
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
async def test_create_sends_snake_case_row_and_returns_report(settings, product_payload):
    captured: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        body = json.loads(request.content)
        return httpx.Response(201, json=[{**body, "id": 11, "created_at": "2024-05-01T10:00:00+00:00"}])

    repository = _repository(settings, handler)
    report = await repository.create_report(
        NewReport.model_validate({**product_payload, "analysis": {"executiveSummary": "Good"}})
    )

    request = captured[0]
    body = json.loads(request.content)
    assert request.method == "POST"
    assert str(request.url) == TABLE_URL
    assert request.headers["Prefer"] == "return=representation"
    assert request.headers["apikey"] == "service-role-key"
    assert request.headers["Authorization"] == "Bearer service-role-key"
    assert body["sales_channels"] == '{"Online","Retail"}'
    assert body["promo_price"] is None
    assert "productName" not in body

    assert report.id == 11
    assert report.product_name == "Trail Flask"
    assert report.sales_channels == ["Online", "Retail"]
    assert report.created_at is not None


@pytest.mark.asyncio
async def test_create_surfaces_backend_error_text(settings, product_payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"message": 'column "foo" does not exist'})

    repository = _repository(settings, handler)
    with pytest.raises(StorageError) as exc_info:
        await repository.create_report(NewReport.model_validate(product_payload))

    assert 'column "foo" does not exist' in exc_info.value.message
    assert exc_info.value.code == "DATABASE_ERROR"


@pytest.mark.asyncio
async def test_create_with_empty_body_raises(settings, product_payload):
    repository = _repository(settings, lambda request: httpx.Response(201, json=[]))
    with pytest.raises(StorageError):
        await repository.create_report(NewReport.model_validate(product_payload))


@pytest.mark.asyncio
async def test_list_requests_newest_first(settings):
    captured: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            200,
            json=[
                _row(2, "2024-05-02T10:00:00+00:00"),
                _row(1, "2024-05-01T10:00:00+00:00", sales_channels=["Direct"]),
            ],
        )

    reports = await _repository(settings, handler).list_reports()

    assert captured[0].url.params["order"] == "created_at.desc"
    assert [r.id for r in reports] == [2, 1]
    assert reports[1].sales_channels == ["Direct"]


@pytest.mark.asyncio
async def test_get_missing_returns_none(settings):
    captured: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=[])

    assert await _repository(settings, handler).get_report(99) is None
    assert captured[0].url.params["id"] == "eq.99"


@pytest.mark.asyncio
async def test_get_existing_returns_report(settings):
    handler = lambda request: httpx.Response(200, json=[_row(5, "2024-05-01T10:00:00+00:00")])
    report = await _repository(settings, handler).get_report(5)
    assert report.id == 5
    assert report.analysis == {"executiveSummary": "Good"}


@pytest.mark.asyncio
async def test_delete_missing_id_is_not_an_error(settings):
    captured: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(204)

    await _repository(settings, handler).delete_report(12345)

    assert captured[0].method == "DELETE"
    assert captured[0].url.params["id"] == "eq.12345"


@pytest.mark.asyncio
async def test_transport_failure_raises_storage_error(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route to host", request=request)

    with pytest.raises(StorageError):
        await _repository(settings, handler).list_reports()


@pytest.mark.asyncio
async def test_upload_image_returns_public_url(settings):
    captured: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"Key": "report-images/whatever"})

    url = await _repository(settings, handler).upload_image(b"\x89PNG", "my photo.png", "image/png")

    request = captured[0]
    assert request.url.path.startswith("/storage/v1/object/report-images/")
    assert request.url.path.endswith("-my-photo.png")
    assert request.headers["x-upsert"] == "false"
    assert request.headers["Content-Type"] == "image/png"
    assert request.content == b"\x89PNG"

    key = request.url.path.rsplit("/", 1)[1]
    assert key.split("-", 1)[0].isdigit()
    assert url == f"https://project.supabase.test/storage/v1/object/public/report-images/{key}"


@pytest.mark.asyncio
async def test_upload_failure_raises_upload_error(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(413, json={"error": "Payload too large"})

    with pytest.raises(UploadError) as exc_info:
        await _repository(settings, handler).upload_image(b"x", "a.png", "image/png")

    assert "Payload too large" in exc_info.value.message
