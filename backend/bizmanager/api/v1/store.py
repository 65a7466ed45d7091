"""
Router FastAPI per Store, backup, profilo ditta e anagrafiche
Progetto: BizManager Pro
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from bizmanager.core.deps import get_ledger
from bizmanager.schemas.store import (
    Anagrafiche,
    AnagraficaUpsert,
    CompanyLogoUpdate,
    CompanyUpdate,
    ExportEnvelope,
    InitialBalanceUpdate,
    ResetRequest,
    Store,
    StoreStatus,
)
from bizmanager.services.anagrafica_service import AnagraficaService
from bizmanager.services.store_service import CompanyService, LedgerSession

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/store",
    tags=["Dati"],
)


def get_company_service() -> CompanyService:
    return CompanyService()


def get_anagrafica_service() -> AnagraficaService:
    return AnagraficaService()


@router.get(
    "/",
    name="dati_stato",
    summary="Stato completo",
    response_model=Store,
)
async def get_store(ledger: LedgerSession = Depends(get_ledger)) -> Store:
    return ledger.store


@router.get(
    "/status",
    name="dati_diagnostica",
    summary="Diagnostica storage",
    description="Storage degradato (dati non persistenti), conteggi e record scartati al caricamento.",
    response_model=StoreStatus,
)
async def get_status(ledger: LedgerSession = Depends(get_ledger)) -> StoreStatus:
    return ledger.status()


# -------------------------------------------------------------------
# Backup
# -------------------------------------------------------------------

@router.get(
    "/export",
    name="dati_esporta",
    summary="Esporta backup",
    response_model=ExportEnvelope,
)
async def export_backup(ledger: LedgerSession = Depends(get_ledger)) -> ExportEnvelope:
    return ledger.repository.export_backup(ledger.store)


@router.post(
    "/import",
    name="dati_importa",
    summary="Importa backup",
    description=(
        "Il corpo deve essere un backup esportato (oggetto JSON con chiave \"state\"). "
        "Lo stato corrente viene sostituito e normalizzato."
    ),
    response_model=StoreStatus,
)
async def import_backup(
    request: Request,
    ledger: LedgerSession = Depends(get_ledger),
) -> StoreStatus:
    payload = await request.body()
    ledger.import_backup(payload)
    return ledger.status()


@router.post(
    "/reset",
    name="dati_azzera",
    summary="Azzera tutti i dati",
    description="Richiede confirm=true e la frase RESET.",
    response_model=Store,
)
async def reset_all(
    data: ResetRequest,
    ledger: LedgerSession = Depends(get_ledger),
) -> Store:
    return ledger.reset_all(data.confirm, data.confirm_phrase)


# -------------------------------------------------------------------
# Profilo ditta
# -------------------------------------------------------------------

@router.patch(
    "/company",
    name="ditta_aggiorna",
    summary="Aggiorna profilo ditta",
    response_model=Store,
)
async def update_company(
    data: CompanyUpdate,
    ledger: LedgerSession = Depends(get_ledger),
    service: CompanyService = Depends(get_company_service),
) -> Store:
    if data.company_name is not None:
        service.set_company_name(ledger.store, data.company_name)
    if data.company_info is not None:
        service.update_company_info(ledger.store, data.company_info)
    ledger.commit()
    return ledger.store


@router.put(
    "/company/logo",
    name="ditta_logo",
    summary="Imposta o rimuove il logo",
    response_model=Store,
)
async def set_company_logo(
    data: CompanyLogoUpdate,
    ledger: LedgerSession = Depends(get_ledger),
    service: CompanyService = Depends(get_company_service),
) -> Store:
    service.set_company_logo(ledger.store, data.company_logo_data_url)
    ledger.commit()
    return ledger.store


@router.put(
    "/initial-balance",
    name="ditta_saldo_iniziale",
    summary="Imposta saldo iniziale",
    response_model=Store,
)
async def set_initial_balance(
    data: InitialBalanceUpdate,
    ledger: LedgerSession = Depends(get_ledger),
    service: CompanyService = Depends(get_company_service),
) -> Store:
    service.set_initial_balance(ledger.store, data.saldo_iniziale)
    ledger.commit()
    return ledger.store


# -------------------------------------------------------------------
# Anagrafiche
# -------------------------------------------------------------------

@router.get(
    "/anagrafiche",
    name="anagrafiche_lista",
    summary="Clienti e fornitori",
    response_model=Anagrafiche,
)
async def get_anagrafiche(
    ledger: LedgerSession = Depends(get_ledger),
    service: AnagraficaService = Depends(get_anagrafica_service),
) -> Anagrafiche:
    return service.get_all(ledger.store)


@router.post(
    "/anagrafiche",
    name="anagrafiche_aggiungi",
    summary="Aggiungi cliente o fornitore",
    response_model=Anagrafiche,
    status_code=status.HTTP_200_OK,
)
async def upsert_anagrafica(
    data: AnagraficaUpsert,
    ledger: LedgerSession = Depends(get_ledger),
    service: AnagraficaService = Depends(get_anagrafica_service),
) -> Anagrafiche:
    if service.upsert_anagrafica(ledger.store, data.tipo, data.nome):
        ledger.commit()
    return service.get_all(ledger.store)
