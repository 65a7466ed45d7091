"""
Service Layer per i Lavori
Progetto: BizManager Pro

Definisce la logica di business per lavori, incassi e righe lavoro:
- Creazione lavoro con totale concordato
- Incassi con generazione automatica del movimento di entrata
- Chiusura automatica del lavoro al saldo
- Righe di costo (materiali e lavorazioni)
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from bizmanager.core.config import settings
from bizmanager.core.exceptions import BusinessValidationError
from bizmanager.core.utils import (
    ZERO,
    IdAllocator,
    date_sort_key,
    now_iso,
    parse_decimal,
    parse_qty,
    round_money,
    safe_trim,
    safe_upper,
    today_noon_iso,
)
from bizmanager.schemas.job import (
    Job,
    JobCreate,
    JobLine,
    JobLineCreate,
    JobLineKind,
    JobListItem,
    JobListView,
    JobPayment,
    JobPaymentCreate,
    JobStatus,
    JobSummary,
    PaymentRecorded,
)
from bizmanager.schemas.movement import CounterpartyType, Movement, MovementType
from bizmanager.schemas.store import AnagraficaKind, Store
from bizmanager.services.anagrafica_service import AnagraficaService
from bizmanager.services.purchase_service import PurchaseService

# Logger per questo modulo
logger = logging.getLogger(__name__)

anagrafica_service = AnagraficaService()
purchase_service = PurchaseService()


def coerce_line_kind(value: Any) -> JobLineKind:
    """Tipo riga: valori sconosciuti diventano "materiale"."""
    if value in (JobLineKind.MATERIALE, JobLineKind.LAVORAZIONE):
        return JobLineKind(value)
    return JobLineKind.MATERIALE


def _coerce_unit_price(value: Any) -> Decimal:
    price = parse_decimal(value, ZERO)
    return price if price >= ZERO else ZERO


class JobService:
    """
    Service per la gestione dei lavori.

    Tutti i metodi operano sullo Store ricevuto come primo argomento
    e lo modificano sul posto; il salvataggio è responsabilità del
    chiamante (LedgerSession.commit).

    Riferimenti a lavori o righe inesistenti restituiscono None;
    i dati non validi sollevano BusinessValidationError senza
    modificare lo Store.
    """

    # ------------------------------------------------------------
    # Lavori
    # ------------------------------------------------------------

    def get_job(self, store: Store, job_id: int) -> Optional[Job]:
        return next((job for job in store.jobs if job.id == job_id), None)

    def create_job(
        self,
        store: Store,
        data: JobCreate,
        quote_id: Optional[int] = None,
    ) -> Job:
        """
        Crea un nuovo lavoro in stato aperto.

        Args:
            store: Store corrente
            data: Titolo, cliente, commessa, totale concordato e note
            quote_id: Preventivo di origine (se generato da una conferma)

        Returns:
            Job: Il lavoro creato

        Raises:
            BusinessValidationError: Se titolo/cliente mancano o il totale non è positivo
        """
        titolo = safe_trim(data.titolo)
        cliente = safe_trim(data.cliente)
        if not titolo or not cliente:
            raise BusinessValidationError("Titolo e cliente sono obbligatori")
        if not data.agreed_total.is_finite():
            raise BusinessValidationError("Totale concordato non valido")
        agreed_total = round_money(data.agreed_total)
        if agreed_total <= ZERO:
            raise BusinessValidationError(
                "Il totale concordato deve essere maggiore di zero",
                extra={"agreed_total": str(data.agreed_total)},
            )

        job = Job(
            id=IdAllocator(store.all_ids()).next(),
            titolo=titolo,
            commessa=safe_upper(data.commessa),
            cliente=cliente,
            agreed_total=agreed_total,
            stato=JobStatus.APERTO,
            note=safe_trim(data.note),
            created_iso=now_iso(),
            quote_id=quote_id,
        )
        store.jobs.append(job)
        anagrafica_service.upsert_anagrafica(store, AnagraficaKind.CLIENTE, cliente)

        logger.info("Lavoro %s creato: %s (%s)", job.id, job.titolo, job.agreed_total)
        return job

    def update_job_note(self, store: Store, job_id: int, note: Any) -> Optional[Job]:
        job = self.get_job(store, job_id)
        if job is None:
            return None
        job.note = safe_trim(note)
        return job

    def list_jobs(self, store: Store, view: JobListView = JobListView.OPEN) -> list[JobListItem]:
        """
        Lista lavori con incassato e residuo.

        - open: lavori aperti, residuo decrescente
        - archived: lavori archiviati, più recenti prima
        - all: tutti, più recenti prima
        """
        if view == JobListView.OPEN:
            jobs = [job for job in store.jobs if job.stato == JobStatus.APERTO]
        elif view == JobListView.ARCHIVED:
            jobs = [job for job in store.jobs if job.stato == JobStatus.ARCHIVED]
        else:
            jobs = list(store.jobs)

        items = [
            JobListItem(
                job=job,
                paid=self.get_job_paid(store, job.id),
                due=self.get_job_due(store, job.id),
            )
            for job in jobs
        ]
        if view == JobListView.OPEN:
            items.sort(key=lambda item: item.due, reverse=True)
        else:
            items.sort(key=lambda item: date_sort_key(item.job.created_iso), reverse=True)
        return items

    def job_summary(self, store: Store, job_id: int) -> Optional[JobSummary]:
        """Dettaglio lavoro: valori derivati, incassi, righe e acquisti collegati."""
        job = self.get_job(store, job_id)
        if job is None:
            return None
        return JobSummary(
            job=job,
            paid=self.get_job_paid(store, job_id),
            due=self.get_job_due(store, job_id),
            lines_cost=self.get_job_lines_cost(store, job_id),
            payments=self.get_job_payments(store, job_id),
            lines=self.get_job_lines(store, job_id),
            purchases=purchase_service.purchases_for_commessa(store, job.commessa),
        )

    # ------------------------------------------------------------
    # Incassi
    # ------------------------------------------------------------

    def get_job_payments(self, store: Store, job_id: int) -> list[JobPayment]:
        payments = [p for p in store.job_payments if p.job_id == job_id]
        return sorted(payments, key=lambda p: date_sort_key(p.date_iso), reverse=True)

    def get_job_paid(self, store: Store, job_id: int) -> Decimal:
        return sum((p.amount for p in store.job_payments if p.job_id == job_id), ZERO)

    def get_job_due(self, store: Store, job_id: int) -> Decimal:
        """Residuo da incassare, mai negativo; 0 per un lavoro inesistente."""
        job = self.get_job(store, job_id)
        if job is None:
            return ZERO
        return max(ZERO, job.agreed_total - self.get_job_paid(store, job_id))

    def create_job_payment(
        self,
        store: Store,
        job_id: int,
        data: JobPaymentCreate,
    ) -> Optional[PaymentRecorded]:
        """
        Registra un incasso su un lavoro.

        Steps:
        1. Verifica che il lavoro esista (altrimenti None)
        2. Valida l'importo (finito e > 0 dopo l'arrotondamento)
        3. Aggiunge il pagamento con data odierna alle 12:00Z
        4. Genera il movimento di entrata con stesso importo e data
        5. Chiude il lavoro se il residuo è azzerato

        Raises:
            BusinessValidationError: Se l'importo non è valido
        """
        job = self.get_job(store, job_id)
        if job is None:
            return None

        if not data.amount.is_finite():
            raise BusinessValidationError("Importo non valido")
        amount = round_money(data.amount)
        if amount <= ZERO:
            raise BusinessValidationError(
                "L'importo dell'incasso deve essere maggiore di zero",
                extra={"amount": str(data.amount)},
            )

        ids = IdAllocator(store.all_ids())
        payment = JobPayment(
            id=ids.next(),
            job_id=job.id,
            date_iso=today_noon_iso(),
            amount=amount,
            method=safe_trim(data.method) or settings.default_payment_method,
            note=safe_trim(data.note),
        )
        movement = Movement(
            id=ids.next(),
            date_iso=payment.date_iso,
            desc=f"Incasso {job.titolo}",
            commessa=job.commessa,
            importo=payment.amount,
            tipo=MovementType.ENTRATA,
            controparte_tipo=CounterpartyType.CLIENTE,
            controparte_nome=job.cliente,
        )
        store.job_payments.append(payment)
        store.movimenti.append(movement)

        job_closed = False
        if job.stato == JobStatus.APERTO and self.get_job_due(store, job.id) <= ZERO:
            job.stato = JobStatus.CHIUSO
            job_closed = True
            logger.info("Lavoro %s saldato e chiuso", job.id)

        logger.info(
            "Incasso %s registrato su lavoro %s: %s (%s)",
            payment.id,
            job.id,
            payment.amount,
            payment.method,
        )
        return PaymentRecorded(
            payment=payment, synthesized_movement=movement, job_closed=job_closed
        )

    # ------------------------------------------------------------
    # Righe lavoro
    # ------------------------------------------------------------

    def get_job_lines(self, store: Store, job_id: int) -> list[JobLine]:
        return [line for line in store.job_lines if line.job_id == job_id]

    def get_job_line(self, store: Store, line_id: int) -> Optional[JobLine]:
        return next((line for line in store.job_lines if line.id == line_id), None)

    def create_job_line(
        self, store: Store, job_id: int, data: JobLineCreate
    ) -> Optional[JobLine]:
        """
        Aggiunge una riga al lavoro; None se il lavoro non esiste.

        Quantità mancanti diventano 1, prezzi mancanti 0, l'unità
        di default è "pz".
        """
        job = self.get_job(store, job_id)
        if job is None:
            return None
        desc = safe_trim(data.desc)
        if not desc:
            raise BusinessValidationError("Descrizione obbligatoria")

        line = JobLine(
            id=IdAllocator(store.all_ids()).next(),
            job_id=job.id,
            kind=coerce_line_kind(data.kind),
            desc=desc,
            qty=parse_qty(data.qty),
            unit=safe_trim(data.unit) or settings.default_unit,
            unit_price=_coerce_unit_price(data.unit_price),
            note=safe_trim(data.note),
            done=False,
            created_iso=now_iso(),
        )
        store.job_lines.append(line)
        logger.info("Riga %s aggiunta al lavoro %s: %s", line.id, job.id, desc)
        return line

    def update_job_line(
        self, store: Store, line_id: int, field: str, value: Any
    ) -> Optional[JobLine]:
        """
        Modifica un singolo campo della riga.

        Campi gestiti: desc, note, qty, unit, unitPrice, kind, done.
        Un campo sconosciuto non modifica nulla. Una descrizione vuota
        viene ignorata: la riga resterebbe senza descrizione.
        """
        line = self.get_job_line(store, line_id)
        if line is None:
            return None

        if field == "desc":
            line.desc = safe_trim(value) or line.desc
        elif field == "note":
            line.note = safe_trim(value)
        elif field == "qty":
            line.qty = parse_qty(value)
        elif field == "unit":
            line.unit = safe_trim(value) or settings.default_unit
        elif field in ("unitPrice", "unit_price"):
            line.unit_price = _coerce_unit_price(value)
        elif field == "kind":
            line.kind = coerce_line_kind(value)
        elif field == "done":
            line.done = bool(value)
        else:
            logger.debug("Campo riga sconosciuto ignorato: %s", field)
        return line

    def delete_job_line(self, store: Store, line_id: int) -> Optional[JobLine]:
        line = self.get_job_line(store, line_id)
        if line is None:
            return None
        store.job_lines.remove(line)
        logger.info("Riga %s eliminata dal lavoro %s", line.id, line.job_id)
        return line

    def toggle_job_line_done(self, store: Store, line_id: int) -> Optional[JobLine]:
        line = self.get_job_line(store, line_id)
        if line is None:
            return None
        line.done = not line.done
        return line

    def get_job_lines_cost(self, store: Store, job_id: int) -> Decimal:
        """Somma qty × prezzo delle righe con prezzo positivo."""
        cost = sum(
            (
                line.qty * line.unit_price
                for line in store.job_lines
                if line.job_id == job_id and line.unit_price > ZERO
            ),
            ZERO,
        )
        return round_money(cost)
