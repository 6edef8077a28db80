"""Report repository backed by SQLAlchemy and a local media directory.

Used for local development (``STORAGE_BACKEND=sql``). Images are written to
``media_dir`` and served by the application under ``/media``.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.core.errors import StorageError, UploadError
from app.models.report import ReportRecord
from app.repositories.report_repository import (
    COLUMN_NAMES,
    ReportRepository,
    build_object_key,
    row_to_report,
)
from app.schemas.product_schemas import NewReport, Report

logger = logging.getLogger(__name__)


def _record_to_row(record: ReportRecord) -> Dict[str, Any]:
    row = {column: getattr(record, column) for column in COLUMN_NAMES.values()}
    row["id"] = record.id
    row["created_at"] = record.created_at
    return row


class SqlReportRepository(ReportRepository):
    def __init__(
        self,
        session_factory: sessionmaker,
        media_dir: str,
        public_base_url: str,
    ) -> None:
        self.session_factory = session_factory
        self.media_dir = Path(media_dir)
        self.public_base_url = public_base_url.rstrip("/")

    async def create_report(self, report: NewReport) -> Report:
        values = {attribute: getattr(report, attribute) for attribute in COLUMN_NAMES}
        values["sales_channels"] = list(report.sales_channels)
        try:
            with self.session_factory() as db:
                record = ReportRecord(**values)
                db.add(record)
                db.commit()
                db.refresh(record)
                created = row_to_report(_record_to_row(record))
        except SQLAlchemyError as exc:
            logger.error(f"[REPOSITORY] Insert failed: {exc}")
            raise StorageError(f"Failed to create report: {exc}") from exc
        logger.info(f"[REPOSITORY] ✓ Report created: id={created.id}")
        return created

    async def list_reports(self) -> List[Report]:
        stmt = select(ReportRecord).order_by(
            ReportRecord.created_at.desc(), ReportRecord.id.desc()
        )
        try:
            with self.session_factory() as db:
                records = db.execute(stmt).scalars().all()
                return [row_to_report(_record_to_row(record)) for record in records]
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to fetch reports: {exc}") from exc

    async def get_report(self, report_id: int) -> Optional[Report]:
        try:
            with self.session_factory() as db:
                record = db.get(ReportRecord, report_id)
                if record is None:
                    logger.warning(f"[REPOSITORY] ✗ Report not found: id={report_id}")
                    return None
                return row_to_report(_record_to_row(record))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to fetch report: {exc}") from exc

    async def delete_report(self, report_id: int) -> None:
        try:
            with self.session_factory() as db:
                result = db.execute(delete(ReportRecord).where(ReportRecord.id == report_id))
                db.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to delete report: {exc}") from exc
        logger.info(f"[REPOSITORY] Report deleted: id={report_id}, rows={result.rowcount}")

    async def upload_image(self, file_bytes: bytes, original_name: str, mime_type: str) -> str:
        key = build_object_key(original_name, int(time.time() * 1000))
        try:
            self.media_dir.mkdir(parents=True, exist_ok=True)
            (self.media_dir / key).write_bytes(file_bytes)
        except OSError as exc:
            raise UploadError(f"Failed to upload image: {exc}") from exc
        url = f"{self.public_base_url}/media/{key}"
        logger.info(f"[REPOSITORY] ✓ Image stored: key={key}, mime={mime_type}")
        return url
