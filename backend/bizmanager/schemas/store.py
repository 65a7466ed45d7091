"""
Schema Pydantic dello Store
Progetto: BizManager Pro

Lo Store è l'aggregato radice: contiene tutte le collezioni e viene
serializzato come un unico documento JSON versionato.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Optional

from pydantic import Field

from bizmanager.core.config import settings
from bizmanager.schemas.common import Amount, CamelModel
from bizmanager.schemas.job import Job, JobLine, JobPayment
from bizmanager.schemas.movement import Movement
from bizmanager.schemas.purchase import PurchaseLine
from bizmanager.schemas.quote import Quote

STORE_VERSION = 2


class AnagraficaKind(str, Enum):
    CLIENTE = "cliente"
    FORNITORE = "fornitore"


class CompanyInfo(CamelModel):
    address: str = ""
    piva: str = ""
    phone: str = ""
    email: str = ""


class Anagrafiche(CamelModel):
    """Registri dei nomi di clienti e fornitori (deduplicati e ordinati)."""
    clienti: list[str] = Field(default_factory=list)
    fornitori: list[str] = Field(default_factory=list)


class Store(CamelModel):
    """Aggregato radice dello stato del gestionale."""
    version: int = STORE_VERSION
    company_name: str = Field(default_factory=lambda: settings.default_company_name)
    company_logo_data_url: Optional[str] = None
    company_info: CompanyInfo = Field(default_factory=CompanyInfo)
    quote_counter: int = 1
    selected_quote_id: Optional[int] = None
    saldo_iniziale: Amount = Decimal("0")
    last_sync_iso: Optional[str] = Field(default=None, alias="lastSyncISO")
    movimenti: list[Movement] = Field(default_factory=list)
    anagrafiche: Anagrafiche = Field(default_factory=Anagrafiche)
    jobs: list[Job] = Field(default_factory=list)
    job_payments: list[JobPayment] = Field(default_factory=list)
    job_lines: list[JobLine] = Field(default_factory=list)
    purchase_lines: list[PurchaseLine] = Field(default_factory=list)
    quotes: list[Quote] = Field(default_factory=list)

    def all_ids(self) -> Iterator[int]:
        """Tutti gli identificativi presenti, per l'allocazione di nuovi id."""
        for collection in (
            self.movimenti,
            self.jobs,
            self.job_payments,
            self.job_lines,
            self.purchase_lines,
            self.quotes,
        ):
            for record in collection:
                yield record.id

    def to_document(self) -> dict[str, Any]:
        """Documento JSON-compatibile con le chiavi persistite."""
        return self.model_dump(mode="json", by_alias=True)


# -------------------------------------------------------------------
# Input e modelli di lettura
# -------------------------------------------------------------------

class CompanyUpdate(CamelModel):
    """Aggiornamento parziale del profilo ditta."""
    company_name: Optional[str] = Field(default=None, max_length=200)
    company_info: Optional[CompanyInfo] = None


class CompanyLogoUpdate(CamelModel):
    company_logo_data_url: Optional[str] = None


class InitialBalanceUpdate(CamelModel):
    saldo_iniziale: Decimal


class AnagraficaUpsert(CamelModel):
    tipo: AnagraficaKind
    nome: str = Field(..., max_length=200)


class ResetRequest(CamelModel):
    """Azzeramento totale: richiede conferma e la frase RESET."""
    confirm: bool = False
    confirm_phrase: Optional[str] = None


class ExportEnvelope(CamelModel):
    """Involucro del backup esportato."""
    exported_at: str
    app: str
    state: dict[str, Any]


class DiscardedRecord(CamelModel):
    """Record scartato durante la normalizzazione."""
    collection: str
    index: int
    reason: str


class NormalizationResult(CamelModel):
    """Store normalizzato e diagnostica dei record scartati."""
    store: Store
    discarded: list[DiscardedRecord] = Field(default_factory=list)


class StoreStatus(CamelModel):
    """Stato dello storage e dimensione delle collezioni."""
    storage_degraded: bool
    version: int
    counts: dict[str, int]
    discarded: list[DiscardedRecord] = Field(default_factory=list)
