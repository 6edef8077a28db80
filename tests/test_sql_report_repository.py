"""Tests for the SQLAlchemy-backed repository on in-memory SQLite."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.core.database import create_db_engine, create_session_factory, init_db
from app.models.report import ReportRecord
from app.repositories.sql_report_repository import SqlReportRepository
from app.schemas.product_schemas import NewReport


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def sql_repository(session_factory, tmp_path) -> SqlReportRepository:
    return SqlReportRepository(
        session_factory,
        media_dir=str(tmp_path / "media"),
        public_base_url="http://127.0.0.1:8000/",
    )


def _new_report(product_payload, **overrides) -> NewReport:
    return NewReport.model_validate({**product_payload, **overrides})


@pytest.mark.asyncio
async def test_create_and_get_round_trip(sql_repository, product_payload):
    created = await sql_repository.create_report(
        _new_report(product_payload, analysis={"executiveSummary": "Good"})
    )

    assert created.id is not None
    assert created.created_at is not None

    fetched = await sql_repository.get_report(created.id)
    assert fetched.product_name == "Trail Flask"
    assert fetched.sales_channels == ["Online", "Retail"]
    assert fetched.analysis == {"executiveSummary": "Good"}
    assert fetched.promo_price is None


@pytest.mark.asyncio
async def test_get_missing_returns_none(sql_repository):
    assert await sql_repository.get_report(404) is None


@pytest.mark.asyncio
async def test_list_is_newest_first(sql_repository, session_factory, product_payload):
    first = await sql_repository.create_report(_new_report(product_payload, productName="First"))
    second = await sql_repository.create_report(_new_report(product_payload, productName="Second"))
    third = await sql_repository.create_report(_new_report(product_payload, productName="Third"))

    # make "First" the newest regardless of insert order
    with session_factory() as db:
        record = db.get(ReportRecord, first.id)
        record.created_at = datetime.now(timezone.utc) + timedelta(days=1)
        db.commit()

    reports = await sql_repository.list_reports()

    assert [r.id for r in reports] == [first.id, third.id, second.id]
    created = [r.created_at for r in reports]
    assert created == sorted(created, reverse=True)


@pytest.mark.asyncio
async def test_delete_is_idempotent(sql_repository, product_payload):
    created = await sql_repository.create_report(_new_report(product_payload))

    await sql_repository.delete_report(created.id)
    await sql_repository.delete_report(created.id)
    await sql_repository.delete_report(987654)

    assert await sql_repository.get_report(created.id) is None


@pytest.mark.asyncio
async def test_upload_image_writes_media_file(sql_repository, tmp_path):
    url = await sql_repository.upload_image(b"\x89PNG", "my photo.png", "image/png")

    key = url.rsplit("/", 1)[1]
    assert url == f"http://127.0.0.1:8000/media/{key}"
    assert key.endswith("-my-photo.png")
    assert (tmp_path / "media" / key).read_bytes() == b"\x89PNG"
