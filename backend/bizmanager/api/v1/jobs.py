"""
Router FastAPI per i Lavori
Progetto: BizManager Pro

Definisce gli endpoint per lavori, incassi, righe lavoro,
archiviazione ed eliminazione a cascata.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from bizmanager.core.config import settings
from bizmanager.core.deps import get_ledger
from bizmanager.core.exceptions import ConfirmationRequiredError, NotFoundError
from bizmanager.core.guards import phrase_matches
from bizmanager.schemas.job import (
    CascadePreview,
    FieldUpdate,
    Job,
    JobCreate,
    JobLine,
    JobLineCreate,
    JobListItem,
    JobListView,
    JobNoteUpdate,
    JobPaymentCreate,
    JobSummary,
    PaymentRecorded,
)
from bizmanager.services.cascade_service import CascadeService
from bizmanager.services.job_service import JobService
from bizmanager.services.store_service import LedgerSession

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/jobs",
    tags=["Lavori"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_job_service() -> JobService:
    return JobService()


def get_cascade_service() -> CascadeService:
    return CascadeService()


def _job_not_found(job_id: int) -> NotFoundError:
    return NotFoundError(f"Lavoro {job_id} non trovato", extra={"job_id": job_id})


def _line_not_found(line_id: int) -> NotFoundError:
    return NotFoundError(f"Riga lavoro {line_id} non trovata", extra={"line_id": line_id})


# -------------------------------------------------------------------
# Lavori
# -------------------------------------------------------------------

@router.get(
    "/",
    name="lavori_lista",
    summary="Lista lavori",
    description=(
        "open: lavori aperti per residuo decrescente; "
        "archived: archivio, più recenti prima; all: tutti."
    ),
    response_model=list[JobListItem],
)
async def list_jobs(
    view: JobListView = Query(JobListView.OPEN, description="open | archived | all"),
    ledger: LedgerSession = Depends(get_ledger),
    service: JobService = Depends(get_job_service),
) -> list[JobListItem]:
    return service.list_jobs(ledger.store, view)


@router.post(
    "/",
    name="lavori_crea",
    summary="Crea lavoro",
    description="Crea un lavoro aperto con totale concordato; il cliente entra in anagrafica.",
    response_model=Job,
    status_code=status.HTTP_201_CREATED,
)
async def create_job(
    data: JobCreate,
    ledger: LedgerSession = Depends(get_ledger),
    service: JobService = Depends(get_job_service),
) -> Job:
    job = service.create_job(ledger.store, data)
    ledger.commit()
    return job


@router.get(
    "/{job_id}",
    name="lavori_dettaglio",
    summary="Dettaglio lavoro",
    description="Lavoro con incassato, residuo, costo righe, incassi, righe e acquisti collegati.",
    response_model=JobSummary,
)
async def get_job(
    job_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: JobService = Depends(get_job_service),
) -> JobSummary:
    summary = service.job_summary(ledger.store, job_id)
    if summary is None:
        raise _job_not_found(job_id)
    return summary


@router.patch(
    "/{job_id}/note",
    name="lavori_note",
    summary="Aggiorna note lavoro",
    response_model=Job,
)
async def update_job_note(
    job_id: int,
    data: JobNoteUpdate,
    ledger: LedgerSession = Depends(get_ledger),
    service: JobService = Depends(get_job_service),
) -> Job:
    job = service.update_job_note(ledger.store, job_id, data.note)
    if job is None:
        raise _job_not_found(job_id)
    ledger.commit()
    return job


@router.post(
    "/{job_id}/payments",
    name="lavori_incasso",
    summary="Registra incasso",
    description=(
        "Registra un incasso con data odierna, genera il movimento di entrata "
        "e chiude il lavoro quando il residuo si azzera."
    ),
    response_model=PaymentRecorded,
    status_code=status.HTTP_201_CREATED,
)
async def create_job_payment(
    job_id: int,
    data: JobPaymentCreate,
    ledger: LedgerSession = Depends(get_ledger),
    service: JobService = Depends(get_job_service),
) -> PaymentRecorded:
    recorded = service.create_job_payment(ledger.store, job_id, data)
    if recorded is None:
        raise _job_not_found(job_id)
    ledger.commit()
    return recorded


# -------------------------------------------------------------------
# Righe lavoro
# -------------------------------------------------------------------

@router.post(
    "/{job_id}/lines",
    name="lavori_riga_crea",
    summary="Aggiungi riga lavoro",
    response_model=JobLine,
    status_code=status.HTTP_201_CREATED,
)
async def create_job_line(
    job_id: int,
    data: JobLineCreate,
    ledger: LedgerSession = Depends(get_ledger),
    service: JobService = Depends(get_job_service),
) -> JobLine:
    line = service.create_job_line(ledger.store, job_id, data)
    if line is None:
        raise _job_not_found(job_id)
    ledger.commit()
    return line


@router.patch(
    "/lines/{line_id}",
    name="lavori_riga_modifica",
    summary="Modifica campo riga lavoro",
    description="Campi: desc, note, qty, unit, unitPrice, kind, done. Campi sconosciuti ignorati.",
    response_model=JobLine,
)
async def update_job_line(
    line_id: int,
    data: FieldUpdate,
    ledger: LedgerSession = Depends(get_ledger),
    service: JobService = Depends(get_job_service),
) -> JobLine:
    line = service.update_job_line(ledger.store, line_id, data.field, data.value)
    if line is None:
        raise _line_not_found(line_id)
    ledger.commit()
    return line


@router.post(
    "/lines/{line_id}/toggle",
    name="lavori_riga_fatto",
    summary="Segna riga come fatta/da fare",
    response_model=JobLine,
)
async def toggle_job_line_done(
    line_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: JobService = Depends(get_job_service),
) -> JobLine:
    line = service.toggle_job_line_done(ledger.store, line_id)
    if line is None:
        raise _line_not_found(line_id)
    ledger.commit()
    return line


@router.delete(
    "/lines/{line_id}",
    name="lavori_riga_elimina",
    summary="Elimina riga lavoro",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_job_line(
    line_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: JobService = Depends(get_job_service),
) -> None:
    if service.delete_job_line(ledger.store, line_id) is None:
        raise _line_not_found(line_id)
    ledger.commit()


# -------------------------------------------------------------------
# Archiviazione ed eliminazione
# -------------------------------------------------------------------

@router.post(
    "/{job_id}/archive",
    name="lavori_archivia",
    summary="Archivia lavoro",
    response_model=Job,
)
async def archive_job(
    job_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: CascadeService = Depends(get_cascade_service),
) -> Job:
    job = service.archive_job(ledger.store, job_id)
    if job is None:
        raise _job_not_found(job_id)
    ledger.commit()
    return job


@router.post(
    "/{job_id}/unarchive",
    name="lavori_ripristina",
    summary="Ripristina lavoro archiviato",
    response_model=Job,
)
async def unarchive_job(
    job_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: CascadeService = Depends(get_cascade_service),
) -> Job:
    job = service.unarchive_job(ledger.store, job_id)
    if job is None:
        raise _job_not_found(job_id)
    ledger.commit()
    return job


@router.get(
    "/{job_id}/cascade",
    name="lavori_anteprima_eliminazione",
    summary="Anteprima eliminazione a cascata",
    description="Numero di incassi, righe e acquisti che verrebbero eliminati con il lavoro.",
    response_model=CascadePreview,
)
async def preview_job_cascade(
    job_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: CascadeService = Depends(get_cascade_service),
) -> CascadePreview:
    preview = service.preview_job_cascade(ledger.store, job_id)
    if preview is None:
        raise _job_not_found(job_id)
    return preview


@router.delete(
    "/{job_id}",
    name="lavori_elimina",
    summary="Elimina lavoro a cascata",
    description=(
        "Richiede confirm=true e la frase ELIMINA. Rimuove incassi, righe e "
        "acquisti della commessa; i movimenti di cassa restano."
    ),
    response_model=CascadePreview,
)
async def delete_job(
    job_id: int,
    confirm: bool = Query(False, description="Prima conferma"),
    confirm_phrase: Optional[str] = Query(None, description="Frase di conferma (ELIMINA)"),
    ledger: LedgerSession = Depends(get_ledger),
    service: CascadeService = Depends(get_cascade_service),
) -> CascadePreview:
    preview = service.preview_job_cascade(ledger.store, job_id)
    if preview is None:
        raise _job_not_found(job_id)

    if not confirm or not phrase_matches(confirm_phrase, settings.delete_confirm_phrase):
        logger.warning("Eliminazione lavoro %s rifiutata: conferma mancante", job_id)
        raise ConfirmationRequiredError(
            f"Per eliminare il lavoro conferma e digita \"{settings.delete_confirm_phrase}\"",
            extra={"preview": preview.model_dump(mode="json", by_alias=True)},
        )

    report = service.delete_job_cascade(ledger.store, job_id)
    ledger.commit()
    return report
