"""
Service Layer per i Movimenti di cassa
Progetto: BizManager Pro

Registro entrate/uscite e valori derivati: saldo attuale, totali
e serie del saldo progressivo.
"""

import logging
from decimal import Decimal
from typing import Optional

from bizmanager.core.exceptions import BusinessValidationError
from bizmanager.core.utils import (
    ZERO,
    IdAllocator,
    date_sort_key,
    now_iso,
    round_money,
    safe_trim,
    safe_upper,
)
from bizmanager.schemas.movement import (
    BalancePoint,
    BalanceRead,
    CounterpartyType,
    Movement,
    MovementCreate,
    MovementTotals,
    MovementType,
)
from bizmanager.schemas.store import AnagraficaKind, Store
from bizmanager.services.anagrafica_service import AnagraficaService

# Logger per questo modulo
logger = logging.getLogger(__name__)

anagrafica_service = AnagraficaService()


def signed_amount(movement: Movement) -> Decimal:
    """Importo con segno: positivo per le entrate, negativo per le uscite."""
    if movement.tipo == MovementType.ENTRATA:
        return movement.importo
    return -movement.importo


class MovementService:
    """
    Service per il registro dei movimenti.

    Il saldo è sempre derivato: saldo iniziale più la somma con segno
    dei movimenti, arrotondata al centesimo.
    """

    def list_movements(
        self,
        store: Store,
        tipo: Optional[MovementType] = None,
        commessa: Optional[str] = None,
    ) -> list[Movement]:
        """Movimenti in ordine cronologico, con filtri opzionali."""
        movements = sorted(store.movimenti, key=lambda m: date_sort_key(m.date_iso))
        if tipo is not None:
            movements = [m for m in movements if m.tipo == tipo]
        if commessa:
            code = safe_upper(commessa)
            movements = [m for m in movements if m.commessa == code]
        return movements

    def record_movement(self, store: Store, data: MovementCreate) -> Movement:
        """
        Registra un movimento manuale.

        Raises:
            BusinessValidationError: Se descrizione o importo non sono validi
        """
        desc = safe_trim(data.desc)
        if not desc:
            raise BusinessValidationError("Descrizione obbligatoria")
        if not data.importo.is_finite() or data.importo < ZERO:
            raise BusinessValidationError("Importo non valido")

        movement = Movement(
            id=IdAllocator(store.all_ids()).next(),
            date_iso=safe_trim(data.date_iso) or now_iso(),
            desc=desc,
            commessa=safe_upper(data.commessa),
            importo=round_money(data.importo),
            tipo=data.tipo,
            controparte_tipo=data.controparte_tipo,
            controparte_nome=safe_trim(data.controparte_nome),
        )
        store.movimenti.append(movement)

        if movement.controparte_tipo != CounterpartyType.ALTRO:
            anagrafica_service.upsert_anagrafica(
                store, AnagraficaKind(movement.controparte_tipo.value), movement.controparte_nome
            )

        logger.info(
            "Movimento %s registrato: %s %s", movement.id, movement.tipo.value, movement.importo
        )
        return movement

    def current_balance(self, store: Store) -> Decimal:
        total = store.saldo_iniziale + sum((signed_amount(m) for m in store.movimenti), ZERO)
        return round_money(total)

    def movement_totals(self, store: Store) -> MovementTotals:
        """Totale entrate, totale uscite e margine (entrate - uscite)."""
        entrate = sum(
            (m.importo for m in store.movimenti if m.tipo == MovementType.ENTRATA), ZERO
        )
        uscite = sum(
            (m.importo for m in store.movimenti if m.tipo == MovementType.USCITA), ZERO
        )
        return MovementTotals(
            entrate=round_money(entrate),
            uscite=round_money(uscite),
            margine=round_money(entrate - uscite),
        )

    def balance_timeline(self, store: Store) -> list[BalancePoint]:
        """
        Serie del saldo progressivo.

        Il primo punto è il saldo iniziale (senza data); segue un punto
        per ogni movimento in ordine cronologico.
        """
        running = store.saldo_iniziale
        points = [BalancePoint(date_iso=None, saldo=round_money(running))]
        for movement in self.list_movements(store):
            running += signed_amount(movement)
            points.append(BalancePoint(date_iso=movement.date_iso, saldo=round_money(running)))
        return points

    def summary(self, store: Store) -> BalanceRead:
        return BalanceRead(
            saldo_iniziale=store.saldo_iniziale,
            saldo_attuale=self.current_balance(store),
            totals=self.movement_totals(store),
        )
