"""Report repository backed by Supabase (PostgREST table + Storage bucket)."""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import Settings
from app.core.errors import StorageError, UploadError
from app.repositories.report_repository import (
    ReportRepository,
    build_object_key,
    report_to_row,
    row_to_report,
)
from app.schemas.product_schemas import NewReport, Report

logger = logging.getLogger(__name__)

REPORTS_TABLE = "reports"


class SupabaseReportRepository(ReportRepository):
    """Talks to PostgREST and Storage over a shared ``httpx.AsyncClient``."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self.base_url = (settings.supabase_url or "").rstrip("/")
        self.api_key = settings.supabase_key or ""
        self.bucket = settings.storage_bucket
        self._http = http_client

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{REPORTS_TABLE}"

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        headers.update(extra)
        return headers

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            logger.error(f"[REPOSITORY] {method} {url} transport error: {exc}")
            raise StorageError(f"Database request failed: {exc}") from exc
        if response.is_error:
            logger.error(
                f"[REPOSITORY] {method} {url} failed: status={response.status_code}, "
                f"body={response.text[:500]}"
            )
            raise StorageError(f"Database error: {_error_detail(response)}")
        return response

    async def create_report(self, report: NewReport) -> Report:
        row = report_to_row(report)
        logger.info(f"[REPOSITORY] Inserting report: product_name={report.product_name}")
        response = await self._request(
            "POST",
            self.table_url,
            headers=self._headers(Prefer="return=representation"),
            json=row,
        )
        rows = _json_rows(response)
        if not rows:
            raise StorageError("Failed to create report: no data returned")
        created = row_to_report(rows[0])
        logger.info(f"[REPOSITORY] ✓ Report created: id={created.id}")
        return created

    async def list_reports(self) -> List[Report]:
        response = await self._request(
            "GET",
            self.table_url,
            headers=self._headers(),
            params={"select": "*", "order": "created_at.desc"},
        )
        reports = [row_to_report(row) for row in _json_rows(response)]
        logger.info(f"[REPOSITORY] Listed reports: count={len(reports)}")
        return reports

    async def get_report(self, report_id: int) -> Optional[Report]:
        response = await self._request(
            "GET",
            self.table_url,
            headers=self._headers(),
            params={"select": "*", "id": f"eq.{report_id}"},
        )
        rows = _json_rows(response)
        if not rows:
            logger.warning(f"[REPOSITORY] ✗ Report not found: id={report_id}")
            return None
        return row_to_report(rows[0])

    async def delete_report(self, report_id: int) -> None:
        # delete-by-filter matching no rows still succeeds
        await self._request(
            "DELETE",
            self.table_url,
            headers=self._headers(),
            params={"id": f"eq.{report_id}"},
        )
        logger.info(f"[REPOSITORY] Report deleted: id={report_id}")

    async def upload_image(self, file_bytes: bytes, original_name: str, mime_type: str) -> str:
        key = build_object_key(original_name, int(time.time() * 1000))
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{key}"
        logger.info(f"[REPOSITORY] Uploading image: key={key}, bytes={len(file_bytes)}")
        try:
            response = await self._http.post(
                url,
                content=file_bytes,
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": mime_type,
                    "x-upsert": "false",
                },
            )
        except httpx.RequestError as exc:
            raise UploadError(f"Failed to upload image: {exc}") from exc
        if response.is_error:
            logger.error(
                f"[REPOSITORY] Upload failed: key={key}, status={response.status_code}"
            )
            raise UploadError(f"Failed to upload image: {_error_detail(response)}")

        public_url = f"{self.base_url}/storage/v1/object/public/{self.bucket}/{key}"
        logger.info(f"[REPOSITORY] ✓ Image uploaded: url={public_url}")
        return public_url


def _json_rows(response: httpx.Response) -> List[Dict[str, Any]]:
    if not response.content:
        return []
    try:
        data = response.json()
    except ValueError as exc:
        raise StorageError("Database returned a non-JSON body") from exc
    if isinstance(data, dict):
        return [data]
    return [row for row in data if isinstance(row, dict)] if isinstance(data, list) else []


def _error_detail(response: httpx.Response) -> str:
    """Prefer the backend's own error message over the raw body."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:500] or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        for key in ("message", "error", "details", "hint"):
            if isinstance(data.get(key), str) and data[key]:
                return data[key]
    return response.text[:500]
