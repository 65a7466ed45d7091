"""
Funzioni di utilità
Progetto: BizManager Pro

Coercizione di testi e numeri provenienti dai form o dallo storage,
arrotondamenti monetari, date ISO e allocazione degli identificativi.
"""

import datetime
import math
import time
import unicodedata
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

CENT = Decimal("0.01")
ZERO = Decimal("0")


# ------------------------------------------------------------
# Testi
# ------------------------------------------------------------

def safe_trim(value: Any) -> str:
    """Converte in stringa e rimuove gli spazi; None e strutture diventano ""."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return ""
    return str(value).strip()


def safe_upper(value: Any) -> str:
    return safe_trim(value).upper()


def locale_sort_key(name: str) -> tuple[str, str]:
    """
    Chiave di ordinamento per nomi in italiano.

    Ignora maiuscole e accenti ("Élite" vicino a "elite"); a parità
    di forma base ordina per la stringa originale, così il risultato è stabile.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), name


def unique_sorted_names(names: Iterable[Any]) -> list[str]:
    """Pulisce, deduplica e ordina una lista di nomi di anagrafica."""
    cleaned = {safe_trim(n) for n in names}
    cleaned.discard("")
    return sorted(cleaned, key=locale_sort_key)


# ------------------------------------------------------------
# Numeri
# ------------------------------------------------------------

def parse_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Converte un valore in Decimal con semantica "numero a virgola mobile".

    Accetta int, float, Decimal e stringhe (anche con la virgola decimale
    italiana). Valori mancanti, non numerici o non finiti restituiscono
    il default. Il passaggio da float garantisce che la serializzazione
    JSON e la successiva rilettura producano lo stesso valore.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        if isinstance(value, (int, float, Decimal)):
            number = float(value)
        elif isinstance(value, str):
            text = value.strip().replace(",", ".")
            if not text:
                return default
            number = float(text)
        else:
            return default
    except (ValueError, OverflowError):
        return default
    if not math.isfinite(number):
        return default
    return Decimal(str(number))


def parse_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Converte un identificativo o un contatore in intero positivo."""
    number = parse_decimal(value)
    if number is None or number <= 0 or number != number.to_integral_value():
        return default
    return int(number)


def parse_qty(value: Any) -> Decimal:
    """Quantità di una riga: mancante, non numerica o zero vale 1; i negativi restano."""
    qty = parse_decimal(value)
    if qty is None or qty == ZERO:
        return Decimal("1")
    return qty


def round_money(value: Decimal) -> Decimal:
    """Arrotonda al centesimo (half away from zero)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ------------------------------------------------------------
# Date
# ------------------------------------------------------------

def now_iso() -> str:
    """Timestamp corrente in formato ISO-8601 UTC con millisecondi e suffisso Z."""
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def today_noon_iso() -> str:
    """Data odierna (locale) alle 12:00 UTC, usata per gli incassi."""
    return f"{datetime.date.today().isoformat()}T12:00:00Z"


def parse_iso(value: str) -> Optional[datetime.datetime]:
    """Interpreta una data ISO; le date senza fuso sono considerate UTC."""
    text = safe_trim(value)
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


_EPOCH = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)


def date_sort_key(value: str) -> datetime.datetime:
    """Chiave di ordinamento cronologico; date illeggibili finiscono in fondo."""
    return parse_iso(value) or _EPOCH


# ------------------------------------------------------------
# Identificativi
# ------------------------------------------------------------

class IdAllocator:
    """
    Genera identificativi interi basati sui millisecondi correnti.

    Ogni id restituito è strettamente maggiore di tutti quelli già noti,
    anche se più record vengono creati nello stesso millisecondo.
    """

    def __init__(self, existing: Iterable[int] = ()) -> None:
        self._last = max(existing, default=0)

    def reserve(self, value: int) -> None:
        if value > self._last:
            self._last = value

    def next(self) -> int:
        candidate = max(time.time_ns() // 1_000_000, self._last + 1)
        self._last = candidate
        return candidate
