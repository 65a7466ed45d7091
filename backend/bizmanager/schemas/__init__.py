"""
Schemas Pydantic per il progetto BizManager Pro

Entità del documento di stato, schemi di input per l'API e modelli
di lettura con i valori derivati.
"""

# es: from bizmanager.schemas import Store, Job, Quote

from bizmanager.schemas.common import Amount, CamelModel
from bizmanager.schemas.movement import (
    BalancePoint,
    BalanceRead,
    CounterpartyType,
    Movement,
    MovementCreate,
    MovementTotals,
    MovementType,
)
from bizmanager.schemas.purchase import (
    PurchaseFilters,
    PurchaseLine,
    PurchaseLineCreate,
    PurchaseStats,
)
from bizmanager.schemas.job import (
    CascadePreview,
    FieldUpdate,
    Job,
    JobCreate,
    JobLine,
    JobLineCreate,
    JobLineKind,
    JobListItem,
    JobListView,
    JobNoteUpdate,
    JobPayment,
    JobPaymentCreate,
    JobStatus,
    JobSummary,
    PaymentRecorded,
)
from bizmanager.schemas.quote import (
    Quote,
    QuoteConfirmation,
    QuoteCreate,
    QuoteLine,
    QuoteLineAmounts,
    QuoteLineCreate,
    QuoteLineUpdate,
    QuoteReset,
    QuoteStatus,
    QuoteTotals,
)
from bizmanager.schemas.store import (
    STORE_VERSION,
    Anagrafiche,
    AnagraficaKind,
    AnagraficaUpsert,
    CompanyInfo,
    CompanyLogoUpdate,
    CompanyUpdate,
    DiscardedRecord,
    ExportEnvelope,
    InitialBalanceUpdate,
    NormalizationResult,
    ResetRequest,
    Store,
    StoreStatus,
)

__all__ = [
    # Comuni
    "Amount",
    "CamelModel",
    # Movimenti
    "BalancePoint",
    "BalanceRead",
    "CounterpartyType",
    "Movement",
    "MovementCreate",
    "MovementTotals",
    "MovementType",
    # Acquisti
    "PurchaseFilters",
    "PurchaseLine",
    "PurchaseLineCreate",
    "PurchaseStats",
    # Lavori
    "CascadePreview",
    "FieldUpdate",
    "Job",
    "JobCreate",
    "JobLine",
    "JobLineCreate",
    "JobLineKind",
    "JobListItem",
    "JobListView",
    "JobNoteUpdate",
    "JobPayment",
    "JobPaymentCreate",
    "JobStatus",
    "JobSummary",
    "PaymentRecorded",
    # Preventivi
    "Quote",
    "QuoteConfirmation",
    "QuoteCreate",
    "QuoteLine",
    "QuoteLineAmounts",
    "QuoteLineCreate",
    "QuoteLineUpdate",
    "QuoteReset",
    "QuoteStatus",
    "QuoteTotals",
    # Store
    "STORE_VERSION",
    "Anagrafiche",
    "AnagraficaKind",
    "AnagraficaUpsert",
    "CompanyInfo",
    "CompanyLogoUpdate",
    "CompanyUpdate",
    "DiscardedRecord",
    "ExportEnvelope",
    "InitialBalanceUpdate",
    "NormalizationResult",
    "ResetRequest",
    "Store",
    "StoreStatus",
]
