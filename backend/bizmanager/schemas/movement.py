"""
Schemas Pydantic per i Movimenti di cassa
Progetto: BizManager Pro

Definisce il movimento persistito, lo schema di inserimento e i
modelli di lettura per saldo e KPI.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from bizmanager.schemas.common import Amount, CamelModel


class MovementType(str, Enum):
    """Direzione del flusso di cassa."""
    ENTRATA = "entrata"
    USCITA = "uscita"


class CounterpartyType(str, Enum):
    """Tipo di controparte del movimento."""
    CLIENTE = "cliente"
    FORNITORE = "fornitore"
    ALTRO = "altro"


class Movement(CamelModel):
    """
    Movimento di cassa.

    L'importo è sempre >= 0: il segno del flusso dipende da `tipo`.
    """
    id: int
    date_iso: str = Field(..., alias="dateISO")
    desc: str
    commessa: str = ""
    importo: Amount
    tipo: MovementType = MovementType.ENTRATA
    controparte_tipo: CounterpartyType = CounterpartyType.CLIENTE
    controparte_nome: str = ""


class MovementCreate(CamelModel):
    """Schema per la registrazione manuale di un movimento."""
    desc: str = Field(..., max_length=500, description="Descrizione")
    importo: Decimal = Field(..., description="Importo (>= 0)")
    tipo: MovementType = Field(default=MovementType.ENTRATA)
    commessa: str = Field(default="", max_length=100, description="Codice commessa")
    controparte_tipo: CounterpartyType = Field(default=CounterpartyType.CLIENTE)
    controparte_nome: str = Field(default="", max_length=200)
    date_iso: Optional[str] = Field(
        default=None, alias="dateISO", description="Data ISO (default: adesso)"
    )


class MovementTotals(CamelModel):
    """Totali entrate/uscite e margine."""
    entrate: Amount
    uscite: Amount
    margine: Amount


class BalancePoint(CamelModel):
    """Punto della serie del saldo progressivo."""
    date_iso: Optional[str] = Field(default=None, alias="dateISO")
    saldo: Amount


class BalanceRead(CamelModel):
    """Riepilogo per la home: saldo iniziale, attuale e totali."""
    saldo_iniziale: Amount
    saldo_attuale: Amount
    totals: MovementTotals
