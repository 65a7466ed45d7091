"""
Schemas Pydantic per i Preventivi
Progetto: BizManager Pro

Le righe sono incorporate nel preventivo (senza id proprio) e i totali
sono una cache ricalcolata dal service a ogni modifica delle righe.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import Field

from bizmanager.schemas.common import Amount, CamelModel


class QuoteStatus(str, Enum):
    """Stati del preventivo: solo le bozze sono modificabili."""
    DRAFT = "draft"
    LOCKED = "locked"


class QuoteLine(CamelModel):
    """Riga del preventivo; sconto e iva sono percentuali."""
    desc: str = ""
    qty: Amount = Decimal("1")
    unit_price: Amount = Decimal("0")
    sconto: Amount = Decimal("0")
    iva: Amount = Decimal("22")


class QuoteTotals(CamelModel):
    taxable: Amount = Decimal("0")
    vat: Amount = Decimal("0")
    total: Amount = Decimal("0")


class Quote(CamelModel):
    """Preventivo numerato progressivamente."""
    id: int
    number: int
    date_iso: str = Field(..., alias="dateISO")
    cliente: str = ""
    commessa: str = ""
    status: QuoteStatus = QuoteStatus.DRAFT
    notes: str = ""
    righe: list[QuoteLine] = Field(default_factory=list)
    totals: QuoteTotals = Field(default_factory=QuoteTotals)


# -------------------------------------------------------------------
# Schemi di input
# -------------------------------------------------------------------

class QuoteCreate(CamelModel):
    cliente: str = Field(..., max_length=200)
    commessa: str = Field(..., max_length=100)


class QuoteLineCreate(CamelModel):
    """Nuova riga: i valori numerici accettano la virgola decimale."""
    desc: str = Field(..., max_length=500)
    qty: Any = 1
    unit_price: Any = 0
    sconto: Any = 0
    iva: Any = None


class QuoteLineUpdate(CamelModel):
    """Modifica di un campo di una riga, individuata per posizione."""
    index: int
    field: str
    value: Any = None


class QuoteReset(CamelModel):
    """Reset del preventivo: `confirm` è la prima conferma obbligatoria."""
    confirm: bool = False
    clear_header: bool = False


# -------------------------------------------------------------------
# Modelli di lettura
# -------------------------------------------------------------------

class QuoteLineAmounts(CamelModel):
    """Importi calcolati di una singola riga (non arrotondati)."""
    index: int
    subtotal: Amount
    vat: Amount
    total: Amount


class QuoteConfirmation(CamelModel):
    """
    Stato di conferma di un preventivo.

    Sbloccare un preventivo confermato non modifica il lavoro già creato:
    questo modello rende esplicite entrambe le informazioni.
    """
    quote_id: int
    status: QuoteStatus
    confirmed: bool
    job_ids: list[int] = Field(default_factory=list)
