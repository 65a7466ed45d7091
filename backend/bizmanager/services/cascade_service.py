"""
Service Layer per eliminazione a cascata e archiviazione dei lavori
Progetto: BizManager Pro

L'eliminazione di un lavoro rimuove anche incassi, righe lavoro e
acquisti della stessa commessa. I movimenti di cassa generati dagli
incassi restano: il denaro è già stato incassato.
"""

import logging
from typing import Optional

from bizmanager.schemas.job import CascadePreview, Job, JobStatus
from bizmanager.schemas.store import Store
from bizmanager.services.job_service import JobService
from bizmanager.services.purchase_service import PurchaseService, matches_commessa

# Logger per questo modulo
logger = logging.getLogger(__name__)

job_service = JobService()
purchase_service = PurchaseService()


class CascadeService:
    """Service per le operazioni che coinvolgono più collezioni."""

    def preview_job_cascade(self, store: Store, job_id: int) -> Optional[CascadePreview]:
        """Conta i record che l'eliminazione del lavoro rimuoverebbe."""
        job = job_service.get_job(store, job_id)
        if job is None:
            return None
        return CascadePreview(
            job_id=job.id,
            titolo=job.titolo,
            commessa=job.commessa,
            payments=sum(1 for p in store.job_payments if p.job_id == job.id),
            lines=sum(1 for line in store.job_lines if line.job_id == job.id),
            purchases=len(purchase_service.purchases_for_commessa(store, job.commessa)),
        )

    def delete_job_cascade(self, store: Store, job_id: int) -> Optional[CascadePreview]:
        """
        Elimina il lavoro e i record collegati.

        L'operazione è incondizionata: la doppia conferma è a carico
        del chiamante (vedi core.guards.require_confirmation).

        Returns:
            CascadePreview: Quanti record sono stati rimossi; None se il lavoro non esiste
        """
        report = self.preview_job_cascade(store, job_id)
        if report is None:
            return None

        job = job_service.get_job(store, job_id)
        store.jobs = [j for j in store.jobs if j.id != job_id]
        store.job_payments = [p for p in store.job_payments if p.job_id != job_id]
        store.job_lines = [line for line in store.job_lines if line.job_id != job_id]
        store.purchase_lines = [
            line for line in store.purchase_lines if not matches_commessa(line, job.commessa)
        ]

        logger.info(
            "Lavoro %s eliminato con %d incassi, %d righe, %d acquisti",
            job_id,
            report.payments,
            report.lines,
            report.purchases,
        )
        return report

    def archive_job(self, store: Store, job_id: int) -> Optional[Job]:
        """Archivia il lavoro senza toccare i record collegati."""
        job = job_service.get_job(store, job_id)
        if job is None:
            return None
        job.stato = JobStatus.ARCHIVED
        logger.info("Lavoro %s archiviato", job_id)
        return job

    def unarchive_job(self, store: Store, job_id: int) -> Optional[Job]:
        """Ripristina un lavoro archiviato: chiuso se già saldato, altrimenti aperto."""
        job = job_service.get_job(store, job_id)
        if job is None:
            return None
        if job.stato == JobStatus.ARCHIVED:
            paid = job_service.get_job_paid(store, job.id)
            settled = paid > 0 and job_service.get_job_due(store, job.id) <= 0
            job.stato = JobStatus.CHIUSO if settled else JobStatus.APERTO
            logger.info("Lavoro %s ripristinato come %s", job_id, job.stato.value)
        return job
