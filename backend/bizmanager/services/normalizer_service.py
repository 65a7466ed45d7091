"""
Service Layer per la Normalizzazione dello Stato
Progetto: BizManager Pro

Trasforma un documento di stato qualsiasi (vecchie versioni, campi
mancanti, tipi sbagliati) in uno Store valido. Non solleva eccezioni:
i record irrecuperabili vengono scartati e riportati nella diagnostica.

Regole principali:
- testi ripuliti, numeri convertiti (default 0 o quello del campo)
- id mancanti o duplicati sostituiti con id nuovi
- pagamenti e righe lavoro orfani scartati
- preventivi: forme legacy convertite, totali ricalcolati,
  numeri duplicati rinumerati, contatore >= numero massimo + 1

La normalizzazione è idempotente: normalizzare il risultato di una
normalizzazione produce lo stesso Store.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Callable, Optional

from bizmanager.core.config import settings
from bizmanager.core.utils import (
    ZERO,
    IdAllocator,
    now_iso,
    parse_decimal,
    parse_int,
    parse_qty,
    safe_trim,
    safe_upper,
    unique_sorted_names,
)
from bizmanager.schemas.job import Job, JobLine, JobLineKind, JobPayment, JobStatus
from bizmanager.schemas.movement import CounterpartyType, Movement, MovementType
from bizmanager.schemas.purchase import PurchaseLine
from bizmanager.schemas.quote import Quote, QuoteLine, QuoteStatus
from bizmanager.schemas.store import (
    STORE_VERSION,
    Anagrafiche,
    CompanyInfo,
    DiscardedRecord,
    NormalizationResult,
    Store,
)
from bizmanager.services.quote_service import calculate_totals

# Logger per questo modulo
logger = logging.getLogger(__name__)

ONE = Decimal("1")


class RecordDiscarded(ValueError):
    """Record non recuperabile: viene scartato dalla collezione."""


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _required_text(raw: dict, key: str) -> str:
    value = safe_trim(raw.get(key))
    if not value:
        raise RecordDiscarded(f"campo '{key}' mancante")
    return value


def _non_negative_amount(raw: dict, key: str) -> Decimal:
    value = parse_decimal(raw.get(key), ZERO)
    if value < ZERO:
        raise RecordDiscarded(f"campo '{key}' negativo")
    return value


def _optional_amount(raw: dict, key: str, default: Decimal) -> Decimal:
    value = parse_decimal(raw.get(key), default)
    return value if value >= ZERO else default


class _Context:
    """Stato di lavoro di una singola normalizzazione."""

    def __init__(self, document: dict) -> None:
        self.discarded: list[DiscardedRecord] = []
        self.ids = IdAllocator(self._scan_ids(document))

    @staticmethod
    def _scan_ids(document: dict) -> list[int]:
        found = []
        for key in ("movimenti", "jobs", "jobPayments", "jobLines", "purchaseLines", "quotes"):
            for raw in _as_list(document.get(key)):
                if isinstance(raw, dict):
                    value = parse_int(raw.get("id"))
                    if value is not None:
                        found.append(value)
        return found

    def discard(self, collection: str, index: int, reason: str) -> None:
        logger.warning("Scartato %s[%d]: %s", collection, index, reason)
        self.discarded.append(
            DiscardedRecord(collection=collection, index=index, reason=reason)
        )

    def collect(
        self,
        document: dict,
        key: str,
        build: Callable[[dict, int], Any],
    ) -> list:
        """
        Applica `build` a ogni record della collezione.

        `build` riceve il record grezzo e l'id già validato (unico nella
        collezione); i record che sollevano RecordDiscarded vengono scartati.
        """
        records = []
        seen: set[int] = set()
        for index, raw in enumerate(_as_list(document.get(key))):
            if not isinstance(raw, dict):
                self.discard(key, index, "record non valido")
                continue
            try:
                record_id = parse_int(raw.get("id"))
                if record_id is None or record_id in seen:
                    record_id = self.ids.next()
                record = build(raw, record_id)
            except RecordDiscarded as e:
                self.discard(key, index, str(e))
                continue
            seen.add(record_id)
            records.append(record)
        return records


class NormalizerService:
    """
    Service per la normalizzazione del documento di stato.

    Usage:
        service = NormalizerService()
        result = service.parse(raw_text)
        store = result.store
    """

    def parse(self, raw_text: Optional[str]) -> NormalizationResult:
        """
        Interpreta il testo salvato nello storage.

        Testo assente o vuoto produce lo Store di default; testo non
        interpretabile anche, con una voce nella diagnostica.
        """
        if raw_text is None or not raw_text.strip():
            return NormalizationResult(store=Store())
        try:
            document = json.loads(raw_text)
        except (ValueError, RecursionError) as e:
            logger.warning("Documento di stato illeggibile, uso lo stato vuoto: %s", e)
            return NormalizationResult(
                store=Store(),
                discarded=[
                    DiscardedRecord(collection="document", index=0, reason="JSON non valido")
                ],
            )
        return self.normalize(document)

    def normalize(self, document: Any) -> NormalizationResult:
        """Normalizza un documento già decodificato."""
        if not isinstance(document, dict):
            logger.warning("Documento di stato non è un oggetto, uso lo stato vuoto")
            return NormalizationResult(
                store=Store(),
                discarded=[
                    DiscardedRecord(
                        collection="document", index=0, reason="il documento non è un oggetto"
                    )
                ],
            )

        ctx = _Context(document)

        movimenti = ctx.collect(document, "movimenti", self._movement)
        jobs = ctx.collect(document, "jobs", self._job)
        job_ids = {job.id for job in jobs}
        job_payments = ctx.collect(
            document, "jobPayments", lambda raw, rid: self._payment(raw, rid, job_ids)
        )
        job_lines = ctx.collect(
            document, "jobLines", lambda raw, rid: self._job_line(raw, rid, job_ids)
        )
        purchase_lines = ctx.collect(document, "purchaseLines", self._purchase_line)
        quotes = ctx.collect(document, "quotes", self._quote)

        self._close_settled_jobs(jobs, job_payments)
        quote_counter = self._renumber_quotes(quotes, document.get("quoteCounter"))

        selected_quote_id = parse_int(document.get("selectedQuoteId"))
        if selected_quote_id not in {q.id for q in quotes}:
            selected_quote_id = quotes[0].id if quotes else None

        anagrafiche = _as_dict(document.get("anagrafiche"))
        company_info = _as_dict(document.get("companyInfo"))

        store = Store(
            version=STORE_VERSION,
            company_name=safe_trim(document.get("companyName")) or settings.default_company_name,
            company_logo_data_url=safe_trim(document.get("companyLogoDataUrl")) or None,
            company_info=CompanyInfo(
                address=safe_trim(company_info.get("address")),
                piva=safe_trim(company_info.get("piva")),
                phone=safe_trim(company_info.get("phone")),
                email=safe_trim(company_info.get("email")),
            ),
            quote_counter=quote_counter,
            selected_quote_id=selected_quote_id,
            saldo_iniziale=parse_decimal(document.get("saldoIniziale"), ZERO),
            last_sync_iso=safe_trim(document.get("lastSyncISO")) or None,
            movimenti=movimenti,
            anagrafiche=Anagrafiche(
                clienti=unique_sorted_names(_as_list(anagrafiche.get("clienti"))),
                fornitori=unique_sorted_names(_as_list(anagrafiche.get("fornitori"))),
            ),
            jobs=jobs,
            job_payments=job_payments,
            job_lines=job_lines,
            purchase_lines=purchase_lines,
            quotes=quotes,
        )
        if ctx.discarded:
            logger.info("Normalizzazione completata con %d record scartati", len(ctx.discarded))
        return NormalizationResult(store=store, discarded=ctx.discarded)

    # ------------------------------------------------------------
    # Coercizione dei singoli record
    # ------------------------------------------------------------

    @staticmethod
    def _movement(raw: dict, record_id: int) -> Movement:
        tipo = MovementType.USCITA if raw.get("tipo") == "uscita" else MovementType.ENTRATA
        controparte = raw.get("controparteTipo")
        if controparte in (CounterpartyType.FORNITORE.value, CounterpartyType.ALTRO.value):
            controparte_tipo = CounterpartyType(controparte)
        else:
            controparte_tipo = CounterpartyType.CLIENTE
        return Movement(
            id=record_id,
            date_iso=safe_trim(raw.get("dateISO")) or now_iso(),
            desc=_required_text(raw, "desc"),
            commessa=safe_upper(raw.get("commessa")),
            importo=_non_negative_amount(raw, "importo"),
            tipo=tipo,
            controparte_tipo=controparte_tipo,
            controparte_nome=safe_trim(raw.get("controparteNome")),
        )

    @staticmethod
    def _job(raw: dict, record_id: int) -> Job:
        stato = raw.get("stato")
        if stato not in (JobStatus.CHIUSO.value, JobStatus.ARCHIVED.value):
            stato = JobStatus.APERTO.value
        return Job(
            id=record_id,
            titolo=_required_text(raw, "titolo"),
            commessa=safe_upper(raw.get("commessa")),
            cliente=_required_text(raw, "cliente"),
            agreed_total=_non_negative_amount(raw, "agreedTotal"),
            stato=JobStatus(stato),
            note=safe_trim(raw.get("note")),
            created_iso=safe_trim(raw.get("createdISO")) or now_iso(),
            quote_id=parse_int(raw.get("quoteId")),
        )

    @staticmethod
    def _payment(raw: dict, record_id: int, job_ids: set[int]) -> JobPayment:
        job_id = parse_int(raw.get("jobId"))
        if job_id not in job_ids:
            raise RecordDiscarded("lavoro collegato inesistente")
        amount = parse_decimal(raw.get("amount"))
        if amount is None or amount <= ZERO:
            raise RecordDiscarded("importo non positivo")
        return JobPayment(
            id=record_id,
            job_id=job_id,
            date_iso=safe_trim(raw.get("dateISO")) or now_iso(),
            amount=amount,
            method=safe_trim(raw.get("method")) or settings.default_payment_method,
            note=safe_trim(raw.get("note")),
        )

    @staticmethod
    def _job_line(raw: dict, record_id: int, job_ids: set[int]) -> JobLine:
        job_id = parse_int(raw.get("jobId"))
        if job_id not in job_ids:
            raise RecordDiscarded("lavoro collegato inesistente")
        kind = raw.get("kind")
        if kind != JobLineKind.LAVORAZIONE.value:
            kind = JobLineKind.MATERIALE.value
        return JobLine(
            id=record_id,
            job_id=job_id,
            kind=JobLineKind(kind),
            desc=_required_text(raw, "desc"),
            qty=parse_qty(raw.get("qty")),
            unit=safe_trim(raw.get("unit")) or settings.default_unit,
            unit_price=_optional_amount(raw, "unitPrice", ZERO),
            note=safe_trim(raw.get("note")),
            done=bool(raw.get("done")),
            created_iso=safe_trim(raw.get("createdISO")) or now_iso(),
        )

    @staticmethod
    def _purchase_line(raw: dict, record_id: int) -> PurchaseLine:
        return PurchaseLine(
            id=record_id,
            date_iso=safe_trim(raw.get("dateISO")) or now_iso(),
            fornitore=_required_text(raw, "fornitore"),
            prodotto=_required_text(raw, "prodotto"),
            qty=parse_qty(raw.get("qty")),
            unit_price=_non_negative_amount(raw, "unitPrice"),
            commessa=safe_upper(raw.get("commessa")),
            note=safe_trim(raw.get("note")),
        )

    @staticmethod
    def _quote_line(raw: Any) -> Optional[QuoteLine]:
        if not isinstance(raw, dict):
            return None
        qty = parse_decimal(raw.get("qty"))
        iva = parse_decimal(raw.get("iva"))
        return QuoteLine(
            desc=safe_trim(raw.get("desc")),
            qty=ONE if qty is None else qty,
            unit_price=parse_decimal(raw.get("unitPrice"), ZERO),
            sconto=parse_decimal(raw.get("sconto"), ZERO),
            iva=settings.default_vat_rate if iva is None else iva,
        )

    def _quote(self, raw: dict, record_id: int) -> Quote:
        locked = raw.get("status") == QuoteStatus.LOCKED.value or raw.get("stato") == "confermato"
        righe = [
            line
            for line in (self._quote_line(item) for item in _as_list(raw.get("righe")))
            if line is not None
        ]
        notes = raw.get("notes")
        if notes is None:
            notes = raw.get("note")
        return Quote(
            id=record_id,
            # 0 = da rinumerare
            number=parse_int(raw.get("number"), 0),
            date_iso=(
                safe_trim(raw.get("dateISO")) or safe_trim(raw.get("createdISO")) or now_iso()
            ),
            cliente=_required_text(raw, "cliente"),
            commessa=safe_upper(_required_text(raw, "commessa")),
            status=QuoteStatus.LOCKED if locked else QuoteStatus.DRAFT,
            notes=safe_trim(notes),
            righe=righe,
            totals=calculate_totals(righe),
        )

    # ------------------------------------------------------------
    # Regole sull'insieme
    # ------------------------------------------------------------

    @staticmethod
    def _close_settled_jobs(jobs: list[Job], payments: list[JobPayment]) -> None:
        """Chiude i lavori aperti già saldati dai pagamenti presenti."""
        paid: dict[int, Decimal] = {}
        for payment in payments:
            paid[payment.job_id] = paid.get(payment.job_id, ZERO) + payment.amount
        for job in jobs:
            if job.stato == JobStatus.APERTO and job.id in paid and paid[job.id] >= job.agreed_total:
                logger.info("Lavoro %s già saldato: stato impostato a chiuso", job.id)
                job.stato = JobStatus.CHIUSO

    @staticmethod
    def _renumber_quotes(quotes: list[Quote], raw_counter: Any) -> int:
        """
        Garantisce numeri di preventivo unici e restituisce il contatore.

        I preventivi senza numero valido o con numero già usato ricevono
        numeri nuovi a partire da max(contatore, numero massimo + 1).
        """
        used: set[int] = set()
        to_renumber = []
        for quote in quotes:
            if quote.number > 0 and quote.number not in used:
                used.add(quote.number)
            else:
                to_renumber.append(quote)
        counter = max(parse_int(raw_counter, 1), max(used, default=0) + 1)
        for quote in to_renumber:
            quote.number = counter
            counter += 1
        return counter
