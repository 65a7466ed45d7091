"""
Service Layer per i Preventivi
Progetto: BizManager Pro

Definisce la logica dei preventivi:
- Numerazione progressiva tramite contatore dello Store
- Righe con sconto e IVA percentuali, totali ricalcolati a ogni modifica
- Blocco/sblocco (le modifiche su un preventivo bloccato sono ignorate)
- Conferma come lavoro, duplicazione, reset ed eliminazione
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from bizmanager.core.config import settings
from bizmanager.core.exceptions import BusinessValidationError, ConfirmationRequiredError
from bizmanager.core.guards import phrase_matches, require_confirmation
from bizmanager.core.utils import (
    ZERO,
    IdAllocator,
    now_iso,
    parse_decimal,
    round_money,
    safe_trim,
    safe_upper,
)
from bizmanager.schemas.job import Job, JobCreate, JobLineCreate, JobLineKind
from bizmanager.schemas.quote import (
    Quote,
    QuoteConfirmation,
    QuoteCreate,
    QuoteLine,
    QuoteLineAmounts,
    QuoteLineCreate,
    QuoteStatus,
    QuoteTotals,
)
from bizmanager.schemas.store import AnagraficaKind, Store
from bizmanager.services.anagrafica_service import AnagraficaService
from bizmanager.services.job_service import JobService

# Logger per questo modulo
logger = logging.getLogger(__name__)

anagrafica_service = AnagraficaService()
job_service = JobService()

HUNDRED = Decimal("100")
ONE = Decimal("1")


def line_amounts(line: QuoteLine) -> tuple[Decimal, Decimal]:
    """Imponibile e IVA di una riga, non arrotondati."""
    subtotal = line.qty * line.unit_price * (ONE - line.sconto / HUNDRED)
    return subtotal, subtotal * line.iva / HUNDRED


def calculate_totals(righe: Iterable[QuoteLine]) -> QuoteTotals:
    """
    Totali del preventivo.

    Imponibile e IVA si accumulano senza arrotondare; ogni totale
    viene poi arrotondato al centesimo (half away from zero).
    """
    taxable = ZERO
    vat = ZERO
    for line in righe:
        line_taxable, line_vat = line_amounts(line)
        taxable += line_taxable
        vat += line_vat
    return QuoteTotals(
        taxable=round_money(taxable),
        vat=round_money(vat),
        total=round_money(taxable + vat),
    )


class QuoteService:
    """
    Service per la gestione dei preventivi.

    I metodi di modifica restituiscono None per un preventivo
    inesistente e il preventivo invariato se è bloccato.
    """

    def get_quote(self, store: Store, quote_id: int) -> Optional[Quote]:
        return next((quote for quote in store.quotes if quote.id == quote_id), None)

    def list_quotes(self, store: Store, search: Optional[str] = None) -> list[Quote]:
        """Preventivi per numero decrescente, filtrabili per cliente o commessa."""
        quotes = sorted(store.quotes, key=lambda q: q.number, reverse=True)
        query = safe_trim(search).casefold()
        if query:
            quotes = [
                q for q in quotes
                if query in q.cliente.casefold() or query in q.commessa.casefold()
            ]
        return quotes

    def _next_number(self, store: Store) -> int:
        number = max(store.quote_counter, max((q.number for q in store.quotes), default=0) + 1)
        store.quote_counter = number + 1
        return number

    def create_quote(self, store: Store, data: QuoteCreate) -> Quote:
        """
        Crea un preventivo in bozza e lo rende il preventivo selezionato.

        Raises:
            BusinessValidationError: Se cliente o commessa mancano
        """
        cliente = safe_trim(data.cliente)
        commessa = safe_upper(data.commessa)
        if not cliente or not commessa:
            raise BusinessValidationError("Cliente e commessa sono obbligatori")

        quote = Quote(
            id=IdAllocator(store.all_ids()).next(),
            number=self._next_number(store),
            date_iso=now_iso(),
            cliente=cliente,
            commessa=commessa,
            status=QuoteStatus.DRAFT,
        )
        store.quotes.append(quote)
        store.selected_quote_id = quote.id
        anagrafica_service.upsert_anagrafica(store, AnagraficaKind.CLIENTE, cliente)

        logger.info("Preventivo #%s creato per %s", quote.number, cliente)
        return quote

    def select_quote(self, store: Store, quote_id: int) -> Optional[Quote]:
        quote = self.get_quote(store, quote_id)
        if quote is not None:
            store.selected_quote_id = quote.id
        return quote

    # ------------------------------------------------------------
    # Righe e totali
    # ------------------------------------------------------------

    def recalculate_totals(self, quote: Quote) -> QuoteTotals:
        quote.totals = calculate_totals(quote.righe)
        return quote.totals

    def quote_line_amounts(self, quote: Quote) -> list[QuoteLineAmounts]:
        amounts = []
        for index, line in enumerate(quote.righe):
            subtotal, vat = line_amounts(line)
            amounts.append(
                QuoteLineAmounts(index=index, subtotal=subtotal, vat=vat, total=subtotal + vat)
            )
        return amounts

    def add_quote_line(
        self, store: Store, quote_id: int, data: QuoteLineCreate
    ) -> Optional[Quote]:
        """
        Aggiunge una riga al preventivo.

        Quantità e IVA mancanti o non numeriche diventano 1 e l'aliquota
        di default; prezzo e sconto 0. Zero è un valore valido.
        """
        quote = self.get_quote(store, quote_id)
        if quote is None or quote.status == QuoteStatus.LOCKED:
            return quote

        quote.righe.append(
            QuoteLine(
                desc=safe_trim(data.desc),
                qty=parse_decimal(data.qty, ONE),
                unit_price=parse_decimal(data.unit_price, ZERO),
                sconto=parse_decimal(data.sconto, ZERO),
                iva=parse_decimal(data.iva, settings.default_vat_rate),
            )
        )
        self.recalculate_totals(quote)
        logger.info("Riga aggiunta al preventivo #%s", quote.number)
        return quote

    def delete_quote_line(self, store: Store, quote_id: int, index: int) -> Optional[Quote]:
        quote = self.get_quote(store, quote_id)
        if quote is None or quote.status == QuoteStatus.LOCKED:
            return quote
        if 0 <= index < len(quote.righe):
            del quote.righe[index]
            self.recalculate_totals(quote)
        return quote

    def update_quote_line(
        self, store: Store, quote_id: int, index: int, field: str, value: Any
    ) -> Optional[Quote]:
        """
        Modifica un campo di una riga.

        desc viene ripulita; qty, unitPrice, sconto e iva accettano la
        virgola decimale e valgono 0 se non numerici.
        """
        quote = self.get_quote(store, quote_id)
        if quote is None or quote.status == QuoteStatus.LOCKED:
            return quote
        if not 0 <= index < len(quote.righe):
            return quote

        line = quote.righe[index]
        if field == "desc":
            line.desc = safe_trim(value)
        elif field == "qty":
            line.qty = parse_decimal(value, ZERO)
        elif field in ("unitPrice", "unit_price"):
            line.unit_price = parse_decimal(value, ZERO)
        elif field == "sconto":
            line.sconto = parse_decimal(value, ZERO)
        elif field == "iva":
            line.iva = parse_decimal(value, ZERO)
        else:
            logger.debug("Campo riga preventivo sconosciuto ignorato: %s", field)
            return quote

        self.recalculate_totals(quote)
        return quote

    def update_quote_field(
        self, store: Store, quote_id: int, field: str, value: Any
    ) -> Optional[Quote]:
        """
        Modifica l'intestazione del preventivo (cliente, commessa, notes).

        Cliente e commessa vuoti vengono ignorati: un preventivo senza
        intestazione non supererebbe la normalizzazione.
        """
        quote = self.get_quote(store, quote_id)
        if quote is None or quote.status == QuoteStatus.LOCKED:
            return quote

        if field == "cliente":
            quote.cliente = safe_trim(value) or quote.cliente
        elif field == "commessa":
            quote.commessa = safe_upper(value) or quote.commessa
        elif field == "notes":
            quote.notes = safe_trim(value)
        return quote

    # ------------------------------------------------------------
    # Stato
    # ------------------------------------------------------------

    def lock_quote(self, store: Store, quote_id: int) -> Optional[Quote]:
        quote = self.get_quote(store, quote_id)
        if quote is None:
            return None
        self.recalculate_totals(quote)
        quote.status = QuoteStatus.LOCKED
        logger.info("Preventivo #%s bloccato", quote.number)
        return quote

    def unlock_quote(self, store: Store, quote_id: int) -> Optional[Quote]:
        """Torna in bozza; un eventuale lavoro già generato non viene toccato."""
        quote = self.get_quote(store, quote_id)
        if quote is None:
            return None
        quote.status = QuoteStatus.DRAFT
        logger.info("Preventivo #%s sbloccato", quote.number)
        return quote

    def confirm_quote_as_job(self, store: Store, quote_id: int) -> Optional[Job]:
        """
        Conferma il preventivo generando un lavoro.

        Steps:
        1. Ricalcola i totali
        2. Crea il lavoro "Preventivo #N - cliente" con totale = totale preventivo
        3. Copia ogni riga come lavorazione (unità "pz"; senza descrizione
           diventa "Riga N")
        4. Blocca il preventivo

        Returns:
            Job: Il lavoro creato; None se il preventivo non esiste o è già bloccato

        Raises:
            BusinessValidationError: Se il totale del preventivo è zero
        """
        quote = self.get_quote(store, quote_id)
        if quote is None or quote.status == QuoteStatus.LOCKED:
            return None

        self.recalculate_totals(quote)
        job = job_service.create_job(
            store,
            JobCreate(
                titolo=f"Preventivo #{quote.number} - {quote.cliente}",
                cliente=quote.cliente,
                commessa=quote.commessa,
                agreed_total=quote.totals.total,
                note=f"Da preventivo #{quote.number}",
            ),
            quote_id=quote.id,
        )

        for index, line in enumerate(quote.righe, start=1):
            job_service.create_job_line(
                store,
                job.id,
                JobLineCreate(
                    kind=JobLineKind.LAVORAZIONE.value,
                    desc=safe_trim(line.desc) or f"Riga {index}",
                    qty=line.qty,
                    unit=settings.default_unit,
                    unit_price=line.unit_price,
                ),
            )

        quote.status = QuoteStatus.LOCKED
        logger.info("Preventivo #%s confermato come lavoro %s", quote.number, job.id)
        return job

    def quote_confirmation(self, store: Store, quote_id: int) -> Optional[QuoteConfirmation]:
        """Indica se il preventivo ha già generato uno o più lavori."""
        quote = self.get_quote(store, quote_id)
        if quote is None:
            return None
        job_ids = [job.id for job in store.jobs if job.quote_id == quote.id]
        return QuoteConfirmation(
            quote_id=quote.id,
            status=quote.status,
            confirmed=bool(job_ids),
            job_ids=job_ids,
        )

    # ------------------------------------------------------------
    # Duplicazione, reset, eliminazione
    # ------------------------------------------------------------

    def duplicate_quote(self, store: Store, quote_id: int) -> Optional[Quote]:
        """Copia righe e totali in un nuovo preventivo in bozza, che diventa selezionato."""
        source = self.get_quote(store, quote_id)
        if source is None:
            return None

        quote = Quote(
            id=IdAllocator(store.all_ids()).next(),
            number=self._next_number(store),
            date_iso=now_iso(),
            cliente=source.cliente,
            commessa=source.commessa,
            status=QuoteStatus.DRAFT,
            notes=source.notes,
            righe=[line.model_copy() for line in source.righe],
            totals=source.totals.model_copy(),
        )
        store.quotes.append(quote)
        store.selected_quote_id = quote.id
        anagrafica_service.upsert_anagrafica(store, AnagraficaKind.CLIENTE, quote.cliente)

        logger.info("Preventivo #%s duplicato in #%s", source.number, quote.number)
        return quote

    def reset_quote(
        self,
        store: Store,
        quote_id: int,
        confirm: bool,
        clear_header: bool = False,
    ) -> Optional[Quote]:
        """
        Svuota righe e totali e riporta il preventivo in bozza.

        Con clear_header azzera anche cliente, commessa e note: finché
        l'intestazione non viene ricompilata il preventivo viene scartato
        al caricamento successivo.

        Raises:
            ConfirmationRequiredError: Se manca la conferma
        """
        quote = self.get_quote(store, quote_id)
        if quote is None:
            return None
        require_confirmation("reset_preventivo", confirm)

        quote.status = QuoteStatus.DRAFT
        quote.righe = []
        quote.totals = QuoteTotals()
        if clear_header:
            quote.cliente = ""
            quote.commessa = ""
            quote.notes = ""

        logger.info("Preventivo #%s resettato (intestazione: %s)", quote.number, clear_header)
        return quote

    def delete_quote(
        self,
        store: Store,
        quote_id: int,
        confirm_phrase: Optional[str] = None,
    ) -> Optional[Quote]:
        """
        Elimina un preventivo.

        I preventivi bloccati richiedono la frase di conferma. Se il
        preventivo era selezionato, la selezione passa al primo rimasto.

        Raises:
            ConfirmationRequiredError: Preventivo bloccato senza frase corretta
        """
        quote = self.get_quote(store, quote_id)
        if quote is None:
            return None
        if quote.status == QuoteStatus.LOCKED and not phrase_matches(
            confirm_phrase, settings.delete_confirm_phrase
        ):
            logger.warning("Eliminazione preventivo #%s rifiutata: bloccato", quote.number)
            raise ConfirmationRequiredError(
                f"Preventivo bloccato: per eliminarlo digita \"{settings.delete_confirm_phrase}\"",
                extra={"quote_id": quote.id, "phrase": settings.delete_confirm_phrase},
            )

        store.quotes.remove(quote)
        if store.selected_quote_id == quote.id:
            store.selected_quote_id = store.quotes[0].id if store.quotes else None

        logger.info("Preventivo #%s eliminato", quote.number)
        return quote
