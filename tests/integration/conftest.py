import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from app.config.settings import Settings
from app.database.connection import close_pool, get_connection, init_pool
from app.database.models import JobRecord, ReceiptRecord
from app.database.repositories.job_repository import JobRepository
from app.database.repositories.receipt_repository import ReceiptRepository

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "app" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "receipts_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at one")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def user_id() -> str:
    return f"it-{uuid.uuid4()}"


@pytest.fixture
def integration_cleanup(
    integration_pool: None, user_id: str
) -> Generator[None, None, None]:
    """Remove everything the test user created; jobs and items cascade with receipts."""
    yield
    with get_connection() as conn:
        conn.execute("DELETE FROM receipts WHERE user_id = %s", (user_id,))
        conn.commit()


@pytest.fixture
def seed_receipt(integration_cleanup: None, user_id: str) -> ReceiptRecord:
    return ReceiptRepository().create(
        user_id=user_id,
        document_type="RECEIPT_IMAGE",
        storage_key=f"{user_id}/ticket.jpg",
        image_url=f"/files/{user_id}/ticket.jpg",
        pdf_url=None,
    )


@pytest.fixture
def seed_job(seed_receipt: ReceiptRecord) -> JobRecord:
    return JobRepository().enqueue(
        job_id=f"receipt-{seed_receipt.id}",
        receipt_id=seed_receipt.id,
        document_type=seed_receipt.document_type,
        payload={"storage_key": seed_receipt.storage_key, "user_id": seed_receipt.user_id},
        priority=1,
        max_attempts=3,
        timeout_ms=60000,
    )
