"""
Unit tests for StoreService, LedgerSession e CompanyService.
"""

import json
from decimal import Decimal

import pytest

from bizmanager.core.exceptions import (
    BusinessValidationError,
    ConfirmationRequiredError,
    ImportFormatError,
)
from bizmanager.schemas.job import JobCreate, JobPaymentCreate
from bizmanager.schemas.store import CompanyInfo, Store
from bizmanager.services.job_service import JobService
from bizmanager.services.store_service import CompanyService, LedgerSession, StoreService

STATE_KEY = "bizmanager-test"


@pytest.fixture
def repository(memory_storage) -> StoreService:
    return StoreService(memory_storage, STATE_KEY)


def _store_with_job() -> Store:
    store = Store(company_name="Edil Rossi")
    service = JobService()
    job = service.create_job(
        store, JobCreate(titolo="Facciata", cliente="Condominio Aurora", agreed_total=Decimal("800"))
    )
    service.create_job_payment(store, job.id, JobPaymentCreate(amount=Decimal("200")))
    return store


# ============================================================
# Tests per caricamento e salvataggio
# ============================================================


class TestLoadSave:
    """Tests per load/save."""

    def test_empty_storage_loads_default(self, repository):
        """Test primo avvio: Store di default."""
        result = repository.load()

        assert result.store == Store()
        assert result.discarded == []

    def test_save_then_load(self, repository):
        """Test lo Store salvato viene riletto uguale."""
        store = _store_with_job()

        repository.save(store)

        assert repository.load().store == store

    def test_saved_document_is_camel_case_json(self, repository, memory_storage):
        """Test formato del documento persistito."""
        repository.save(_store_with_job())

        document = json.loads(memory_storage.get(STATE_KEY))
        assert document["companyName"] == "Edil Rossi"
        assert document["jobPayments"][0]["amount"] == 200.0
        assert document["version"] == 2

    def test_corrupt_document_loads_default(self, repository, memory_storage):
        """Test documento corrotto: Store vuoto e diagnostica."""
        memory_storage.set(STATE_KEY, "{{{")

        result = repository.load()

        assert result.store.jobs == []
        assert len(result.discarded) == 1


# ============================================================
# Tests per export/import
# ============================================================


class TestBackup:
    """Tests per export_backup e import_backup."""

    def test_export_envelope(self, repository):
        """Test involucro del backup."""
        envelope = repository.export_backup(_store_with_job())

        assert envelope.app == "BizManagerPro"
        assert envelope.exported_at.endswith("Z")
        assert envelope.state["companyName"] == "Edil Rossi"

    def test_export_import_round_trip(self, repository, memory_storage):
        """Test un backup esportato e reimportato ricrea lo stesso Store."""
        store = _store_with_job()
        payload = repository.export_backup(store).model_dump_json(by_alias=True)

        result = repository.import_backup(payload)

        assert result.store == store
        assert repository.load().store == store

    def test_import_normalizes_state(self, repository):
        """Test lo stato importato passa dalla normalizzazione."""
        result = repository.import_backup(
            {"state": {"jobs": [{"titolo": "Tetto", "cliente": "Neri", "agreedTotal": "1,5e3"}]}}
        )

        assert result.store.jobs[0].agreed_total == Decimal("1500")
        assert result.store.company_name == "La tua ditta"

    @pytest.mark.parametrize(
        "payload",
        ["non json", b"[1, 2]", {"movimenti": []}, {"state": None}, {"state": "x"}, b'{"state": [1]}'],
    )
    def test_invalid_backup_rejected(self, repository, memory_storage, payload):
        """Test backup non valido: errore e storage invariato."""
        repository.save(_store_with_job())
        before = memory_storage.get(STATE_KEY)

        with pytest.raises(ImportFormatError):
            repository.import_backup(payload)
        assert memory_storage.get(STATE_KEY) == before


# ============================================================
# Tests per LedgerSession
# ============================================================


class TestLedgerSession:
    """Tests per commit, reload, reset e stato."""

    def test_commit_persists(self, memory_storage):
        """Test commit: una nuova sessione vede le modifiche."""
        ledger = LedgerSession(memory_storage, STATE_KEY)
        ledger.store = _store_with_job()

        ledger.commit()

        reopened = LedgerSession(memory_storage, STATE_KEY)
        assert reopened.store == ledger.store
        assert reopened.store.last_sync_iso is not None

    def test_reload_discards_uncommitted(self, memory_storage):
        """Test reload: le modifiche non salvate vanno perse."""
        ledger = LedgerSession(memory_storage, STATE_KEY)
        ledger.store.company_name = "Non salvato"

        ledger.reload()

        assert ledger.store.company_name == "La tua ditta"

    def test_reset_requires_phrase(self, memory_storage):
        """Test azzeramento: conferma e frase RESET obbligatorie."""
        ledger = LedgerSession(memory_storage, STATE_KEY)
        ledger.store = _store_with_job()
        ledger.commit()

        with pytest.raises(ConfirmationRequiredError):
            ledger.reset_all(confirm=False, phrase="RESET")
        with pytest.raises(ConfirmationRequiredError):
            ledger.reset_all(confirm=True, phrase="reset dati")
        assert len(ledger.store.jobs) == 1

        ledger.reset_all(confirm=True, phrase=" reset ")

        assert ledger.store == Store()
        assert LedgerSession(memory_storage, STATE_KEY).store.jobs == []

    def test_status_counts(self, memory_storage):
        """Test diagnostica con i conteggi delle collezioni."""
        ledger = LedgerSession(memory_storage, STATE_KEY)
        ledger.store = _store_with_job()

        status = ledger.status()

        assert status.storage_degraded is False
        assert status.counts["jobs"] == 1
        assert status.counts["jobPayments"] == 1
        assert status.counts["movimenti"] == 1
        assert status.counts["clienti"] == 1

    def test_degraded_storage_reported(self):
        """Test stato degradato esposto dalla sessione."""

        class _Broken:
            degraded = True

            def get(self, key):
                return None

            def set(self, key, value):
                pass

            def remove(self, key):
                pass

        assert LedgerSession(_Broken()).storage_degraded is True


# ============================================================
# Tests per il profilo ditta
# ============================================================


class TestCompanyService:
    """Tests per CompanyService."""

    def test_company_name(self, store):
        """Test ragione sociale obbligatoria."""
        service = CompanyService()

        service.set_company_name(store, "  Rossi Costruzioni ")
        assert store.company_name == "Rossi Costruzioni"
        with pytest.raises(BusinessValidationError):
            service.set_company_name(store, "  ")

    def test_company_logo(self, store):
        """Test logo come data URL immagine, rimovibile."""
        service = CompanyService()

        service.set_company_logo(store, "data:image/png;base64,AAAA")
        assert store.company_logo_data_url.startswith("data:image/png")
        with pytest.raises(BusinessValidationError):
            service.set_company_logo(store, "https://example.com/logo.png")
        service.set_company_logo(store, None)
        assert store.company_logo_data_url is None

    def test_company_info_trimmed(self, store):
        """Test dati anagrafici ripuliti."""
        CompanyService().update_company_info(
            store, CompanyInfo(address=" Via Roma 1 ", piva="01234567890 ", email=" info@rossi.it")
        )

        assert store.company_info.address == "Via Roma 1"
        assert store.company_info.piva == "01234567890"
        assert store.company_info.email == "info@rossi.it"

    def test_initial_balance(self, store):
        """Test saldo iniziale, anche negativo."""
        CompanyService().set_initial_balance(store, Decimal("-150.25"))

        assert store.saldo_iniziale == Decimal("-150.25")
