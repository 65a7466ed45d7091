"""
Service Layer per lo Storico Acquisti
Progetto: BizManager Pro

Righe di acquisto da fornitore, ricerca nello storico prodotti e
statistiche di prezzo. Il legame con i lavori è il solo codice
commessa: `matches_commessa` è l'unica definizione del confronto.
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
    parse_iso,
    round_money,
    safe_trim,
    safe_upper,
)
from bizmanager.schemas.purchase import (
    PurchaseFilters,
    PurchaseLine,
    PurchaseLineCreate,
    PurchaseStats,
)
from bizmanager.schemas.store import AnagraficaKind, Store
from bizmanager.services.anagrafica_service import AnagraficaService

# Logger per questo modulo
logger = logging.getLogger(__name__)

anagrafica_service = AnagraficaService()


def matches_commessa(line: PurchaseLine, commessa: Optional[str]) -> bool:
    """Confronto case-insensitive: anche una commessa vuota corrisponde alle righe senza commessa."""
    return safe_upper(line.commessa) == safe_upper(commessa)


class PurchaseService:
    """Service per le righe di acquisto e lo storico prodotti."""

    def record_purchase_line(self, store: Store, data: PurchaseLineCreate) -> PurchaseLine:
        """
        Registra un acquisto e aggiunge il fornitore all'anagrafica.

        Raises:
            BusinessValidationError: Se prodotto, fornitore o prezzo non sono validi
        """
        prodotto = safe_trim(data.prodotto)
        fornitore = safe_trim(data.fornitore)
        if not prodotto or not fornitore:
            raise BusinessValidationError("Prodotto e fornitore sono obbligatori")
        if not data.unit_price.is_finite() or data.unit_price < ZERO:
            raise BusinessValidationError("Prezzo unitario non valido")
        if not data.qty.is_finite() or data.qty <= ZERO:
            raise BusinessValidationError("Quantità non valida")

        line = PurchaseLine(
            id=IdAllocator(store.all_ids()).next(),
            date_iso=safe_trim(data.date_iso) or now_iso(),
            fornitore=fornitore,
            prodotto=prodotto,
            qty=data.qty,
            unit_price=data.unit_price,
            commessa=safe_upper(data.commessa),
            note=safe_trim(data.note),
        )
        store.purchase_lines.append(line)
        anagrafica_service.upsert_anagrafica(store, AnagraficaKind.FORNITORE, fornitore)

        logger.info("Acquisto %s registrato: %s da %s", line.id, prodotto, fornitore)
        return line

    def delete_purchase_line(self, store: Store, line_id: int) -> Optional[PurchaseLine]:
        """Rimuove una riga di acquisto; None se non esiste."""
        for index, line in enumerate(store.purchase_lines):
            if line.id == line_id:
                del store.purchase_lines[index]
                logger.info("Acquisto %s eliminato", line_id)
                return line
        return None

    def purchases_for_commessa(self, store: Store, commessa: Optional[str]) -> list[PurchaseLine]:
        return [line for line in store.purchase_lines if matches_commessa(line, commessa)]

    def product_history(
        self, store: Store, filters: Optional[PurchaseFilters] = None
    ) -> list[PurchaseLine]:
        """
        Ricerca nello storico prodotti.

        - prodotto: sottostringa, senza distinzione tra maiuscole e minuscole
        - fornitore: sottostringa, senza distinzione tra maiuscole e minuscole
        - anno_min / anno_max: anno della data di acquisto (estremi inclusi)

        Il risultato è ordinato per data decrescente.
        """
        filters = filters or PurchaseFilters()
        lines = list(store.purchase_lines)

        if filters.prodotto:
            query = safe_upper(filters.prodotto)
            lines = [line for line in lines if query in safe_upper(line.prodotto)]
        if filters.fornitore:
            query = safe_trim(filters.fornitore).casefold()
            lines = [line for line in lines if query in line.fornitore.casefold()]
        if filters.anno_min is not None or filters.anno_max is not None:
            lines = [line for line in lines if self._in_year_range(line, filters)]

        lines.sort(key=lambda line: date_sort_key(line.date_iso), reverse=True)
        return lines

    @staticmethod
    def _in_year_range(line: PurchaseLine, filters: PurchaseFilters) -> bool:
        parsed = parse_iso(line.date_iso)
        if parsed is None:
            return False
        if filters.anno_min is not None and parsed.year < filters.anno_min:
            return False
        if filters.anno_max is not None and parsed.year > filters.anno_max:
            return False
        return True

    def product_stats(
        self, store: Store, filters: Optional[PurchaseFilters] = None
    ) -> PurchaseStats:
        """
        Statistiche di prezzo sulle righe filtrate.

        L'ultimo prezzo è quello della riga con la data più recente.
        """
        lines = self.product_history(store, filters)
        if not lines:
            return PurchaseStats()

        prices = [line.unit_price for line in lines]
        total_qty: Decimal = sum((line.qty for line in lines), ZERO)
        return PurchaseStats(
            min_price=round_money(min(prices)),
            avg_price=round_money(sum(prices, ZERO) / len(prices)),
            max_price=round_money(max(prices)),
            last_price=round_money(lines[0].unit_price),
            qty=total_qty,
            count=len(lines),
        )
