"""
Pytest configuration and fixtures for BizManager Pro tests.

Lo Store è un oggetto in memoria: i test dei service lavorano su uno
Store nuovo per ogni test; i test API usano una LedgerSession su
SQLite in memoria iniettata con dependency_overrides.
"""

import os

# Prima di importare bizmanager: nessun file di database durante i test
os.environ.setdefault("BIZMANAGER_STORAGE_URL", "sqlite:///:memory:")
os.environ.setdefault("BIZMANAGER_APP_ENV", "testing")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from bizmanager.core.database import build_engine, init_db
from bizmanager.core.deps import get_ledger
from bizmanager.main import app
from bizmanager.schemas.job import JobCreate, JobPaymentCreate
from bizmanager.schemas.store import Store
from bizmanager.services.job_service import JobService
from bizmanager.services.storage_service import MemoryStorage, SqlStorage
from bizmanager.services.store_service import LedgerSession


# ============================================================
# Fixtures per lo Store
# ============================================================


@pytest.fixture
def store() -> Store:
    """Crea uno Store vuoto."""
    return Store()


@pytest.fixture
def job_service() -> JobService:
    return JobService()


@pytest.fixture
def make_job(store, job_service):
    """Factory per creare lavori sullo Store del test."""

    def _make_job(
        titolo: str = "Ristrutturazione bagno",
        cliente: str = "Mario Rossi",
        commessa: str = "c-001",
        agreed_total: str = "1000",
        note: str = "",
    ):
        return job_service.create_job(
            store,
            JobCreate(
                titolo=titolo,
                cliente=cliente,
                commessa=commessa,
                agreed_total=Decimal(agreed_total),
                note=note,
            ),
        )

    return _make_job


@pytest.fixture
def pay(store, job_service):
    """Factory per registrare incassi."""

    def _pay(job_id: int, amount: str, method: str = ""):
        return job_service.create_job_payment(
            store, job_id, JobPaymentCreate(amount=Decimal(amount), method=method)
        )

    return _pay


# ============================================================
# Fixtures per lo Storage
# ============================================================


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def sql_session_factory():
    """Session factory su un database SQLite in memoria dedicato al test."""
    engine = build_engine("sqlite:///:memory:")
    init_db(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def sql_storage(sql_session_factory) -> SqlStorage:
    return SqlStorage(sql_session_factory)


# ============================================================
# Fixtures per l'API
# ============================================================


@pytest.fixture
def ledger(sql_storage) -> LedgerSession:
    return LedgerSession(sql_storage)


@pytest.fixture
def client(ledger):
    """TestClient con la LedgerSession del test."""
    app.dependency_overrides[get_ledger] = lambda: ledger
    yield TestClient(app)
    app.dependency_overrides.clear()
