"""
Router FastAPI per i Movimenti di cassa
Progetto: BizManager Pro

Definisce gli endpoint per registro movimenti, saldo e grafico.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from bizmanager.core.deps import get_ledger
from bizmanager.schemas.movement import (
    BalancePoint,
    BalanceRead,
    Movement,
    MovementCreate,
    MovementTotals,
    MovementType,
)
from bizmanager.services.movement_service import MovementService
from bizmanager.services.store_service import LedgerSession

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/movements",
    tags=["Movimenti"],
)


def get_movement_service() -> MovementService:
    """Dependency per ottenere un'istanza del MovementService."""
    return MovementService()


@router.get(
    "/",
    name="movimenti_lista",
    summary="Lista movimenti",
    description="Movimenti in ordine cronologico, filtrabili per tipo e commessa.",
    response_model=list[Movement],
    status_code=status.HTTP_200_OK,
)
async def list_movements(
    tipo: Optional[MovementType] = Query(None, description="entrata | uscita"),
    commessa: Optional[str] = Query(None, description="Codice commessa"),
    ledger: LedgerSession = Depends(get_ledger),
    service: MovementService = Depends(get_movement_service),
) -> list[Movement]:
    return service.list_movements(ledger.store, tipo=tipo, commessa=commessa)


@router.post(
    "/",
    name="movimenti_crea",
    summary="Registra movimento",
    description="Registra un movimento manuale e aggiorna l'anagrafica della controparte.",
    response_model=Movement,
    status_code=status.HTTP_201_CREATED,
)
async def record_movement(
    data: MovementCreate,
    ledger: LedgerSession = Depends(get_ledger),
    service: MovementService = Depends(get_movement_service),
) -> Movement:
    movement = service.record_movement(ledger.store, data)
    ledger.commit()
    return movement


@router.get(
    "/balance",
    name="movimenti_saldo",
    summary="Saldo attuale",
    description="Saldo iniziale, saldo attuale e totali entrate/uscite.",
    response_model=BalanceRead,
)
async def get_balance(
    ledger: LedgerSession = Depends(get_ledger),
    service: MovementService = Depends(get_movement_service),
) -> BalanceRead:
    return service.summary(ledger.store)


@router.get(
    "/totals",
    name="movimenti_totali",
    summary="Totali entrate e uscite",
    response_model=MovementTotals,
)
async def get_totals(
    ledger: LedgerSession = Depends(get_ledger),
    service: MovementService = Depends(get_movement_service),
) -> MovementTotals:
    return service.movement_totals(ledger.store)


@router.get(
    "/timeline",
    name="movimenti_andamento",
    summary="Andamento del saldo",
    description="Serie del saldo progressivo, a partire dal saldo iniziale.",
    response_model=list[BalancePoint],
)
async def get_timeline(
    ledger: LedgerSession = Depends(get_ledger),
    service: MovementService = Depends(get_movement_service),
) -> list[BalancePoint]:
    return service.balance_timeline(ledger.store)
