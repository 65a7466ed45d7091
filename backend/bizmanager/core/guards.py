"""
Conferme per le operazioni distruttive
Progetto: BizManager Pro

Le operazioni irreversibili richiedono una conferma semplice e,
per le più gravi, anche la digitazione di una frase esatta
(confronto senza spazi esterni e senza distinzione di maiuscole).
"""

import logging
from typing import Optional

from bizmanager.core.exceptions import ConfirmationRequiredError

logger = logging.getLogger(__name__)


def phrase_matches(given: Optional[str], expected: str) -> bool:
    return (given or "").strip().upper() == expected.strip().upper()


def require_confirmation(
    action: str,
    confirm: bool,
    phrase: Optional[str] = None,
    expected_phrase: Optional[str] = None,
) -> None:
    """
    Verifica la doppia conferma di un'operazione distruttiva.

    Args:
        action: Nome dell'operazione (per log e messaggio d'errore)
        confirm: Prima conferma (sì/no)
        phrase: Frase digitata dall'utente
        expected_phrase: Frase richiesta; None se basta la prima conferma

    Raises:
        ConfirmationRequiredError: Se una delle due conferme manca
    """
    if not confirm:
        logger.warning("Operazione %s rifiutata: conferma mancante", action)
        raise ConfirmationRequiredError(
            f"Operazione '{action}' non confermata",
            extra={"action": action},
        )
    if expected_phrase is not None and not phrase_matches(phrase, expected_phrase):
        logger.warning("Operazione %s rifiutata: frase di conferma errata", action)
        raise ConfirmationRequiredError(
            f"Per confermare digita \"{expected_phrase}\"",
            extra={"action": action, "phrase": expected_phrase},
        )
