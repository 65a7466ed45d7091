"""
Schemas Pydantic per lo Storico Acquisti
Progetto: BizManager Pro
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field

from bizmanager.schemas.common import Amount, CamelModel


class PurchaseLine(CamelModel):
    """
    Riga di acquisto da fornitore.

    È collegata a un lavoro solo tramite il codice commessa
    (confronto case-insensitive), non con una chiave esterna.
    """
    id: int
    date_iso: str = Field(..., alias="dateISO")
    fornitore: str
    prodotto: str
    qty: Amount = Decimal("1")
    unit_price: Amount = Decimal("0")
    commessa: str = ""
    note: str = ""


class PurchaseLineCreate(CamelModel):
    """Schema per la registrazione di un acquisto."""
    fornitore: str = Field(..., max_length=200)
    prodotto: str = Field(..., max_length=300)
    qty: Decimal = Field(default=Decimal("1"))
    unit_price: Decimal = Field(default=Decimal("0"))
    commessa: str = Field(default="", max_length=100)
    note: str = Field(default="", max_length=2000)
    date_iso: Optional[str] = Field(default=None, alias="dateISO")


class PurchaseFilters(CamelModel):
    """Filtri della ricerca nello storico prodotti."""
    prodotto: Optional[str] = None
    fornitore: Optional[str] = None
    anno_min: Optional[int] = None
    anno_max: Optional[int] = None


class PurchaseStats(CamelModel):
    """Statistiche di prezzo sulle righe filtrate."""
    min_price: Amount = Decimal("0")
    avg_price: Amount = Decimal("0")
    max_price: Amount = Decimal("0")
    last_price: Amount = Decimal("0")
    qty: Amount = Decimal("0")
    count: int = 0
