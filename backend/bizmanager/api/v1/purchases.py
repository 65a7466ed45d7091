"""
Router FastAPI per lo Storico Acquisti
Progetto: BizManager Pro
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from bizmanager.core.deps import get_ledger
from bizmanager.core.exceptions import NotFoundError
from bizmanager.schemas.purchase import (
    PurchaseFilters,
    PurchaseLine,
    PurchaseLineCreate,
    PurchaseStats,
)
from bizmanager.services.purchase_service import PurchaseService
from bizmanager.services.store_service import LedgerSession

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/purchases",
    tags=["Acquisti"],
)


def get_purchase_service() -> PurchaseService:
    return PurchaseService()


def get_purchase_filters(
    prodotto: Optional[str] = Query(None, description="Prodotto (contiene)"),
    fornitore: Optional[str] = Query(None, description="Fornitore (contiene)"),
    anno_min: Optional[int] = Query(None, alias="annoMin", description="Anno minimo"),
    anno_max: Optional[int] = Query(None, alias="annoMax", description="Anno massimo"),
) -> PurchaseFilters:
    return PurchaseFilters(
        prodotto=prodotto, fornitore=fornitore, anno_min=anno_min, anno_max=anno_max
    )


@router.get(
    "/",
    name="acquisti_storico",
    summary="Storico prodotti",
    description="Righe di acquisto filtrate per prodotto, fornitore e anni, più recenti prima.",
    response_model=list[PurchaseLine],
)
async def product_history(
    filters: PurchaseFilters = Depends(get_purchase_filters),
    ledger: LedgerSession = Depends(get_ledger),
    service: PurchaseService = Depends(get_purchase_service),
) -> list[PurchaseLine]:
    return service.product_history(ledger.store, filters)


@router.get(
    "/stats",
    name="acquisti_statistiche",
    summary="Statistiche prezzi",
    description="Prezzo minimo, medio, massimo e ultimo, quantità totale e numero righe.",
    response_model=PurchaseStats,
)
async def product_stats(
    filters: PurchaseFilters = Depends(get_purchase_filters),
    ledger: LedgerSession = Depends(get_ledger),
    service: PurchaseService = Depends(get_purchase_service),
) -> PurchaseStats:
    return service.product_stats(ledger.store, filters)


@router.get(
    "/commessa/{commessa}",
    name="acquisti_per_commessa",
    summary="Acquisti di una commessa",
    response_model=list[PurchaseLine],
)
async def purchases_for_commessa(
    commessa: str,
    ledger: LedgerSession = Depends(get_ledger),
    service: PurchaseService = Depends(get_purchase_service),
) -> list[PurchaseLine]:
    return service.purchases_for_commessa(ledger.store, commessa)


@router.post(
    "/",
    name="acquisti_crea",
    summary="Registra acquisto",
    response_model=PurchaseLine,
    status_code=status.HTTP_201_CREATED,
)
async def record_purchase_line(
    data: PurchaseLineCreate,
    ledger: LedgerSession = Depends(get_ledger),
    service: PurchaseService = Depends(get_purchase_service),
) -> PurchaseLine:
    line = service.record_purchase_line(ledger.store, data)
    ledger.commit()
    return line


@router.delete(
    "/{line_id}",
    name="acquisti_elimina",
    summary="Elimina acquisto",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_purchase_line(
    line_id: int,
    ledger: LedgerSession = Depends(get_ledger),
    service: PurchaseService = Depends(get_purchase_service),
) -> None:
    if service.delete_purchase_line(ledger.store, line_id) is None:
        raise NotFoundError(f"Acquisto {line_id} non trovato", extra={"line_id": line_id})
    ledger.commit()
