"""
Schemas Pydantic per Lavori, Incassi e Righe lavoro
Progetto: BizManager Pro

Definisce le entità persistite, gli schemi di input per l'API
e i modelli di lettura con i valori derivati (incassato, residuo).
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from bizmanager.schemas.common import Amount, CamelModel
from bizmanager.schemas.movement import Movement
from bizmanager.schemas.purchase import PurchaseLine


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class JobStatus(str, Enum):
    """
    Stati di un lavoro.

    aperto -> chiuso avviene solo automaticamente al saldo;
    archived solo su azione esplicita.
    """
    APERTO = "aperto"
    CHIUSO = "chiuso"
    ARCHIVED = "archived"


class JobLineKind(str, Enum):
    """Tipo di riga lavoro."""
    MATERIALE = "materiale"
    LAVORAZIONE = "lavorazione"


class JobListView(str, Enum):
    """Viste della lista lavori."""
    OPEN = "open"
    ARCHIVED = "archived"
    ALL = "all"


# -------------------------------------------------------------------
# Entità persistite
# -------------------------------------------------------------------

class Job(CamelModel):
    """Lavoro per un cliente con un totale concordato."""
    id: int
    titolo: str
    commessa: str = ""
    cliente: str
    agreed_total: Amount
    stato: JobStatus = JobStatus.APERTO
    note: str = ""
    created_iso: str = Field(..., alias="createdISO")
    quote_id: Optional[int] = Field(
        default=None, description="Preventivo da cui è stato generato il lavoro"
    )


class JobPayment(CamelModel):
    """Incasso registrato su un lavoro. Non viene mai modificato."""
    id: int
    job_id: int
    date_iso: str = Field(..., alias="dateISO")
    amount: Amount
    method: str = "bonifico"
    note: str = ""


class JobLine(CamelModel):
    """Riga di costo del lavoro (materiale o lavorazione)."""
    id: int
    job_id: int
    kind: JobLineKind = JobLineKind.MATERIALE
    desc: str
    qty: Amount = Decimal("1")
    unit: str = "pz"
    unit_price: Amount = Decimal("0")
    note: str = ""
    done: bool = False
    created_iso: str = Field(..., alias="createdISO")


# -------------------------------------------------------------------
# Schemi di input
# -------------------------------------------------------------------

class JobCreate(CamelModel):
    """Schema per la creazione di un lavoro."""
    titolo: str = Field(..., max_length=300, description="Titolo lavoro")
    cliente: str = Field(..., max_length=200, description="Cliente")
    commessa: str = Field(default="", max_length=100, description="Codice commessa")
    agreed_total: Decimal = Field(..., description="Totale concordato (> 0)")
    note: str = Field(default="", max_length=5000)


class JobNoteUpdate(CamelModel):
    note: str = Field(default="", max_length=5000)


class JobPaymentCreate(CamelModel):
    """Schema per la registrazione di un incasso."""
    amount: Decimal = Field(..., description="Importo incassato (> 0)")
    method: str = Field(default="", max_length=50, description="Metodo (default: bonifico)")
    note: str = Field(default="", max_length=2000)


class JobLineCreate(CamelModel):
    """Schema per l'aggiunta di una riga lavoro."""
    kind: str = Field(default=JobLineKind.MATERIALE.value)
    desc: str = Field(..., max_length=500)
    qty: Any = Field(default=1, description="Quantità (default 1)")
    unit: str = Field(default="", max_length=20)
    unit_price: Any = Field(default=0, description="Prezzo unitario, accetta la virgola")
    note: str = Field(default="", max_length=2000)


class FieldUpdate(CamelModel):
    """
    Modifica di un singolo campo.

    Il valore arriva così come digitato nel form: la conversione
    dipende dal campo. Campi sconosciuti vengono ignorati.
    """
    field: str
    value: Any = None


# -------------------------------------------------------------------
# Modelli di lettura ed eventi
# -------------------------------------------------------------------

class PaymentRecorded(CamelModel):
    """
    Esito di un incasso: il pagamento e il movimento di entrata generato.

    A ogni incasso corrisponde esattamente un movimento, con lo stesso
    importo e la stessa data.
    """
    payment: JobPayment
    synthesized_movement: Movement
    job_closed: bool = False


class JobListItem(CamelModel):
    job: Job
    paid: Amount
    due: Amount


class JobSummary(CamelModel):
    """Dettaglio lavoro con valori derivati e record collegati."""
    job: Job
    paid: Amount
    due: Amount
    lines_cost: Amount
    payments: list[JobPayment] = Field(default_factory=list)
    lines: list[JobLine] = Field(default_factory=list)
    purchases: list[PurchaseLine] = Field(default_factory=list)


class CascadePreview(CamelModel):
    """Conteggio dei record che l'eliminazione a cascata rimuoverebbe."""
    job_id: int
    titolo: str
    commessa: str
    payments: int = 0
    lines: int = 0
    purchases: int = 0
