"""
Router FastAPI per i Preventivi
Progetto: BizManager Pro

Definisce gli endpoint per creazione, modifica, blocco, conferma
come lavoro, duplicazione, reset ed eliminazione dei preventivi.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from bizmanager.core.deps import get_ledger
from bizmanager.core.exceptions import ConflictError, NotFoundError
from bizmanager.core.guards import require_confirmation
from bizmanager.schemas.job import FieldUpdate, Job
from bizmanager.schemas.quote import (
    Quote,
    QuoteConfirmation,
    QuoteCreate,
    QuoteLineAmounts,
    QuoteLineCreate,
    QuoteLineUpdate,
    QuoteReset,
    QuoteStatus,
)
from bizmanager.services.quote_service import QuoteService
from bizmanager.services.store_service import LedgerSession

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/quotes",
    tags=["Preventivi"],
)


def get_quote_service() -> QuoteService:
    return QuoteService()


def _quote_not_found(quote_id: int) -> NotFoundError:
    return NotFoundError(f"Preventivo {quote_id} non trovato", extra={"quote_id": quote_id})


def _found(quote: Optional[Quote], quote_id: int) -> Quote:
    if quote is None:
        raise _quote_not_found(quote_id)
    return quote


@router.get(
    "/",
    name="preventivi_lista",
    summary="Lista preventivi",
    description="Preventivi per numero decrescente, con ricerca su cliente o commessa.",
    response_model=list[Quote],
)
async def list_quotes(
    search: Optional[str] = Query(None, description="Testo da cercare"),
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> list[Quote]:
    return service.list_quotes(ledger.store, search)


@router.post(
    "/",
    name="preventivi_crea",
    summary="Crea preventivo",
    response_model=Quote,
    status_code=status.HTTP_201_CREATED,
)
async def create_quote(
    data: QuoteCreate,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    quote = service.create_quote(ledger.store, data)
    ledger.commit()
    return quote


@router.get(
    "/{quote_id}",
    name="preventivi_dettaglio",
    summary="Dettaglio preventivo",
    response_model=Quote,
)
async def get_quote(
    quote_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    return _found(service.get_quote(ledger.store, quote_id), quote_id)


@router.patch(
    "/{quote_id}",
    name="preventivi_intestazione",
    summary="Modifica intestazione",
    description="Campi: cliente, commessa, notes. Ignorato se il preventivo è bloccato.",
    response_model=Quote,
)
async def update_quote_field(
    quote_id: int,
    data: FieldUpdate,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    quote = _found(
        service.update_quote_field(ledger.store, quote_id, data.field, data.value), quote_id
    )
    ledger.commit()
    return quote


@router.post(
    "/{quote_id}/select",
    name="preventivi_seleziona",
    summary="Seleziona preventivo",
    response_model=Quote,
)
async def select_quote(
    quote_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    quote = _found(service.select_quote(ledger.store, quote_id), quote_id)
    ledger.commit()
    return quote


# -------------------------------------------------------------------
# Righe
# -------------------------------------------------------------------

@router.post(
    "/{quote_id}/lines",
    name="preventivi_riga_crea",
    summary="Aggiungi riga",
    response_model=Quote,
)
async def add_quote_line(
    quote_id: int,
    data: QuoteLineCreate,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    quote = _found(service.add_quote_line(ledger.store, quote_id, data), quote_id)
    ledger.commit()
    return quote


@router.patch(
    "/{quote_id}/lines",
    name="preventivi_riga_modifica",
    summary="Modifica campo riga",
    description="Campi: desc, qty, unitPrice, sconto, iva. La riga è indicata per posizione.",
    response_model=Quote,
)
async def update_quote_line(
    quote_id: int,
    data: QuoteLineUpdate,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    quote = _found(
        service.update_quote_line(ledger.store, quote_id, data.index, data.field, data.value),
        quote_id,
    )
    ledger.commit()
    return quote


@router.delete(
    "/{quote_id}/lines/{index}",
    name="preventivi_riga_elimina",
    summary="Elimina riga",
    response_model=Quote,
)
async def delete_quote_line(
    quote_id: int,
    index: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    quote = _found(service.delete_quote_line(ledger.store, quote_id, index), quote_id)
    ledger.commit()
    return quote


@router.get(
    "/{quote_id}/lines/amounts",
    name="preventivi_importi_righe",
    summary="Importi per riga",
    response_model=list[QuoteLineAmounts],
)
async def quote_line_amounts(
    quote_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> list[QuoteLineAmounts]:
    quote = _found(service.get_quote(ledger.store, quote_id), quote_id)
    return service.quote_line_amounts(quote)


# -------------------------------------------------------------------
# Stato e conferma
# -------------------------------------------------------------------

@router.post(
    "/{quote_id}/lock",
    name="preventivi_blocca",
    summary="Blocca preventivo",
    response_model=Quote,
)
async def lock_quote(
    quote_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    quote = _found(service.lock_quote(ledger.store, quote_id), quote_id)
    ledger.commit()
    return quote


@router.post(
    "/{quote_id}/unlock",
    name="preventivi_sblocca",
    summary="Sblocca preventivo",
    description="Torna in bozza. Un lavoro già generato dalla conferma non viene modificato.",
    response_model=Quote,
)
async def unlock_quote(
    quote_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    quote = _found(service.unlock_quote(ledger.store, quote_id), quote_id)
    ledger.commit()
    return quote


@router.post(
    "/{quote_id}/confirm",
    name="preventivi_conferma",
    summary="Conferma come lavoro",
    description="Crea un lavoro dal preventivo e lo blocca. Un preventivo bloccato non è confermabile.",
    response_model=Job,
    status_code=status.HTTP_201_CREATED,
)
async def confirm_quote_as_job(
    quote_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Job:
    quote = _found(service.get_quote(ledger.store, quote_id), quote_id)
    if quote.status == QuoteStatus.LOCKED:
        raise ConflictError(
            f"Il preventivo #{quote.number} è bloccato: sbloccalo prima di confermarlo",
            extra={"quote_id": quote.id},
        )
    job = service.confirm_quote_as_job(ledger.store, quote_id)
    ledger.commit()
    return job


@router.get(
    "/{quote_id}/confirmation",
    name="preventivi_stato_conferma",
    summary="Stato di conferma",
    description="Indica se il preventivo ha già generato dei lavori.",
    response_model=QuoteConfirmation,
)
async def quote_confirmation(
    quote_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteConfirmation:
    confirmation = service.quote_confirmation(ledger.store, quote_id)
    if confirmation is None:
        raise _quote_not_found(quote_id)
    return confirmation


# -------------------------------------------------------------------
# Duplicazione, reset, eliminazione
# -------------------------------------------------------------------

@router.post(
    "/{quote_id}/duplicate",
    name="preventivi_duplica",
    summary="Duplica preventivo",
    response_model=Quote,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_quote(
    quote_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    quote = _found(service.duplicate_quote(ledger.store, quote_id), quote_id)
    ledger.commit()
    return quote


@router.post(
    "/{quote_id}/reset",
    name="preventivi_reset",
    summary="Reset preventivo",
    description="Richiede confirm=true. Svuota righe e totali; clearHeader azzera anche l'intestazione.",
    response_model=Quote,
)
async def reset_quote(
    quote_id: int,
    data: QuoteReset,
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    quote = _found(
        service.reset_quote(ledger.store, quote_id, data.confirm, data.clear_header), quote_id
    )
    ledger.commit()
    return quote


@router.delete(
    "/{quote_id}",
    name="preventivi_elimina",
    summary="Elimina preventivo",
    description="Richiede confirm=true; per i preventivi bloccati anche la frase ELIMINA.",
    response_model=Quote,
)
async def delete_quote(
    quote_id: int,
    confirm: bool = Query(False, description="Prima conferma"),
    confirm_phrase: Optional[str] = Query(None, description="Frase di conferma (ELIMINA)"),
    ledger: LedgerSession = Depends(get_ledger),
    service: QuoteService = Depends(get_quote_service),
) -> Quote:
    _found(service.get_quote(ledger.store, quote_id), quote_id)
    require_confirmation("elimina_preventivo", confirm)
    quote = service.delete_quote(ledger.store, quote_id, confirm_phrase)
    ledger.commit()
    return quote
