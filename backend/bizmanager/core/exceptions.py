"""
Errori applicativi di BizManager Pro.

Ogni errore porta con sé lo status HTTP, un codice stabile per il
frontend e un messaggio leggibile; main.py li converte in JSON con
un unico handler.

I riferimenti a record inesistenti non sollevano eccezioni nel service
layer (restituiscono None): è il router a tradurli in NotFoundError.
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "BusinessValidationError",
    "ValidationError",
    "ConflictError",
    "ConfirmationRequiredError",
    "ImportFormatError",
]


class AppException(Exception):
    """
    Radice degli errori applicativi.

    Le sottoclassi ridefiniscono solo status_code, error_code e
    default_detail.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "Errore interno"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.detail = detail or self.default_detail
        if error_code is not None:
            self.error_code = error_code
        self.extra = extra
        super().__init__(self.detail)

    def to_content(self) -> Dict[str, Any]:
        """Corpo JSON della risposta di errore."""
        return {"detail": self.detail, "error_code": self.error_code, "extra": self.extra}


class NotFoundError(AppException):
    status_code = 404
    error_code = "RESOURCE_NOT_FOUND"
    default_detail = "Risorsa non trovata"


class BusinessValidationError(ValueError, AppException):
    """
    Dato in ingresso che viola una regola del gestionale
    (titolo mancante, importo non positivo, descrizione vuota...).

    È anche un ValueError, così i validatori pydantic la riconoscono.
    """

    status_code = 422
    error_code = "BUSINESS_VALIDATION_ERROR"
    default_detail = "Dati non validi"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        AppException.__init__(self, detail, error_code, extra)


ValidationError = BusinessValidationError


class ConflictError(AppException):
    """Operazione incompatibile con lo stato attuale del record."""

    status_code = 409
    error_code = "CONFLICT_STATE"
    default_detail = "Operazione non consentita nello stato attuale"


class ConfirmationRequiredError(ConflictError):
    """
    Operazione distruttiva senza conferma.

    In extra può viaggiare l'anteprima di ciò che verrebbe eliminato.
    """

    error_code = "CONFIRMATION_REQUIRED"
    default_detail = "Conferma richiesta"


class ImportFormatError(AppException):
    status_code = 400
    error_code = "IMPORT_FORMAT_ERROR"
    default_detail = "Import fallito: file non valido"
