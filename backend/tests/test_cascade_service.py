"""
Unit tests for CascadeService.
"""

from decimal import Decimal

import pytest

from bizmanager.schemas.job import JobLineCreate, JobStatus
from bizmanager.schemas.purchase import PurchaseLineCreate
from bizmanager.services.cascade_service import CascadeService
from bizmanager.services.purchase_service import PurchaseService


@pytest.fixture
def cascade_service() -> CascadeService:
    return CascadeService()


@pytest.fixture
def job_with_records(store, make_job, pay, job_service):
    """Lavoro con due incassi, una riga e due acquisti della sua commessa."""
    job = make_job(commessa="k-10", agreed_total="1000")
    pay(job.id, "100")
    pay(job.id, "200")
    job_service.create_job_line(store, job.id, JobLineCreate(desc="Tubi", unit_price="5"))
    purchases = PurchaseService()
    for prodotto, commessa in (("Raccordi", "K-10"), ("Valvola", "k-10"), ("Silicone", "k-11")):
        purchases.record_purchase_line(
            store,
            PurchaseLineCreate(fornitore="Idraulica Sud", prodotto=prodotto,
                               unit_price=Decimal("2"), commessa=commessa),
        )
    return job


# ============================================================
# Tests per l'eliminazione a cascata
# ============================================================


class TestJobCascade:
    """Tests per preview_job_cascade e delete_job_cascade."""

    def test_preview_counts(self, store, job_with_records, cascade_service):
        """Test conteggio dei record collegati."""
        preview = cascade_service.preview_job_cascade(store, job_with_records.id)

        assert (preview.payments, preview.lines, preview.purchases) == (2, 1, 2)
        assert preview.commessa == "K-10"
        assert len(store.jobs) == 1

    def test_delete_removes_related_records(self, store, job_with_records, cascade_service):
        """Test eliminazione di lavoro, incassi, righe e acquisti della commessa."""
        report = cascade_service.delete_job_cascade(store, job_with_records.id)

        assert report.payments == 2
        assert store.jobs == []
        assert store.job_payments == []
        assert store.job_lines == []
        assert [p.prodotto for p in store.purchase_lines] == ["Silicone"]

    def test_delete_keeps_cash_movements(self, store, job_with_records, cascade_service):
        """Test i movimenti generati dagli incassi restano."""
        cascade_service.delete_job_cascade(store, job_with_records.id)

        assert [m.importo for m in store.movimenti] == [Decimal("100.00"), Decimal("200.00")]

    def test_blank_commessa_removes_blank_purchases(self, store, make_job, cascade_service):
        """Test lavoro senza commessa: eliminati gli acquisti senza commessa, gli altri restano."""
        job = make_job(commessa="")
        purchases = PurchaseService()
        for prodotto, commessa in (("Viti", ""), ("Tasselli", "K-2")):
            purchases.record_purchase_line(
                store,
                PurchaseLineCreate(fornitore="Brico", prodotto=prodotto,
                                   unit_price=Decimal("1"), commessa=commessa),
            )

        assert cascade_service.preview_job_cascade(store, job.id).purchases == 1
        report = cascade_service.delete_job_cascade(store, job.id)

        assert report.purchases == 1
        assert [p.prodotto for p in store.purchase_lines] == ["Tasselli"]

    def test_unknown_job(self, store, cascade_service):
        """Test lavoro inesistente."""
        assert cascade_service.preview_job_cascade(store, 1) is None
        assert cascade_service.delete_job_cascade(store, 1) is None


# ============================================================
# Tests per l'archiviazione
# ============================================================


class TestArchive:
    """Tests per archive_job e unarchive_job."""

    def test_archive_keeps_records(self, store, job_with_records, cascade_service):
        """Test archiviazione senza perdita di dati."""
        job = cascade_service.archive_job(store, job_with_records.id)

        assert job.stato == JobStatus.ARCHIVED
        assert len(store.job_payments) == 2

    def test_unarchive_open_job(self, store, job_with_records, cascade_service):
        """Test ripristino di un lavoro non saldato."""
        cascade_service.archive_job(store, job_with_records.id)

        assert cascade_service.unarchive_job(store, job_with_records.id).stato == JobStatus.APERTO

    def test_unarchive_settled_job(self, store, make_job, pay, cascade_service):
        """Test ripristino di un lavoro saldato: torna chiuso."""
        job = make_job(agreed_total="100")
        pay(job.id, "100")
        cascade_service.archive_job(store, job.id)

        assert cascade_service.unarchive_job(store, job.id).stato == JobStatus.CHIUSO

    def test_unarchive_not_archived_is_noop(self, store, make_job, cascade_service):
        """Test ripristino di un lavoro non archiviato."""
        job = make_job()

        assert cascade_service.unarchive_job(store, job.id).stato == JobStatus.APERTO
        assert cascade_service.archive_job(store, 99) is None
