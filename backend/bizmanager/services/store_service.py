"""
Service Layer per lo Store: caricamento, salvataggio, backup
Progetto: BizManager Pro

Lo Store viene letto dallo storage e normalizzato al caricamento,
e riscritto per intero dopo ogni modifica (write-through).
Qui si trovano anche export/import del backup, l'azzeramento totale
e il profilo ditta.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Optional, Union

from bizmanager.core.config import settings
from bizmanager.core.exceptions import BusinessValidationError, ImportFormatError
from bizmanager.core.guards import require_confirmation
from bizmanager.core.utils import now_iso, parse_decimal, safe_trim
from bizmanager.schemas.store import (
    CompanyInfo,
    DiscardedRecord,
    ExportEnvelope,
    NormalizationResult,
    Store,
    StoreStatus,
)
from bizmanager.services.normalizer_service import NormalizerService
from bizmanager.services.storage_service import KeyValueStorage

# Logger per questo modulo
logger = logging.getLogger(__name__)

normalizer = NormalizerService()


class StoreService:
    """
    Repository dello Store su uno storage chiave-valore.

    Usage:
        repository = StoreService(SqlStorage(SessionLocal))
        result = repository.load()
        repository.save(result.store)
    """

    def __init__(self, storage: KeyValueStorage, key: Optional[str] = None) -> None:
        self.storage = storage
        self.key = key or settings.storage_key

    def load(self) -> NormalizationResult:
        raw = self.storage.get(self.key)
        result = normalizer.parse(raw)
        logger.info(
            "Stato caricato: %d movimenti, %d lavori, %d preventivi",
            len(result.store.movimenti),
            len(result.store.jobs),
            len(result.store.quotes),
        )
        return result

    def save(self, store: Store) -> None:
        self.storage.set(self.key, json.dumps(store.to_document(), ensure_ascii=False))

    def export_backup(self, store: Store) -> ExportEnvelope:
        return ExportEnvelope(
            exported_at=now_iso(),
            app=settings.export_app_name,
            state=store.to_document(),
        )

    def import_backup(self, payload: Union[str, bytes, dict[str, Any]]) -> NormalizationResult:
        """
        Sostituisce lo stato salvato con quello del backup e lo ricarica.

        Il backup deve essere un oggetto JSON con la chiave "state";
        lo stato importato passa dalla normalizzazione come al caricamento.

        Raises:
            ImportFormatError: Se il backup non è valido (nulla viene scritto)
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except (ValueError, RecursionError) as e:
                logger.warning("Import rifiutato: JSON non valido (%s)", e)
                raise ImportFormatError() from e

        if not isinstance(payload, dict) or not isinstance(payload.get("state"), dict):
            logger.warning("Import rifiutato: 'state' mancante o non è un oggetto")
            raise ImportFormatError(extra={"invalid": "state"})

        self.storage.set(self.key, json.dumps(payload["state"], ensure_ascii=False))
        result = self.load()
        self.save(result.store)
        logger.info("Backup importato (%d record scartati)", len(result.discarded))
        return result

    def reset_all(self, confirm: bool, phrase: Optional[str]) -> Store:
        """
        Azzera tutti i dati.

        Raises:
            ConfirmationRequiredError: Se manca la conferma o la frase RESET
        """
        require_confirmation("reset_totale", confirm, phrase, settings.reset_confirm_phrase)
        self.storage.remove(self.key)
        logger.warning("Tutti i dati sono stati azzerati")
        return Store()


class LedgerSession:
    """
    Handle dello Store in uso, condiviso dalle richieste API.

    Come una sessione di database: le route modificano `store` tramite
    i service e chiamano `commit()` per salvare.
    """

    def __init__(self, storage: KeyValueStorage, key: Optional[str] = None) -> None:
        self.repository = StoreService(storage, key)
        self.store = Store()
        self.discarded: list[DiscardedRecord] = []
        self.reload()

    @property
    def storage_degraded(self) -> bool:
        return self.repository.storage.degraded

    def reload(self) -> None:
        self._apply(self.repository.load())

    def _apply(self, result: NormalizationResult) -> None:
        self.store = result.store
        self.discarded = result.discarded

    def commit(self) -> None:
        self.store.last_sync_iso = now_iso()
        self.repository.save(self.store)

    def import_backup(self, payload: Union[str, bytes, dict[str, Any]]) -> NormalizationResult:
        result = self.repository.import_backup(payload)
        self._apply(result)
        return result

    def reset_all(self, confirm: bool, phrase: Optional[str]) -> Store:
        self.store = self.repository.reset_all(confirm, phrase)
        self.discarded = []
        self.repository.save(self.store)
        return self.store

    def status(self) -> StoreStatus:
        store = self.store
        return StoreStatus(
            storage_degraded=self.storage_degraded,
            version=store.version,
            counts={
                "movimenti": len(store.movimenti),
                "jobs": len(store.jobs),
                "jobPayments": len(store.job_payments),
                "jobLines": len(store.job_lines),
                "purchaseLines": len(store.purchase_lines),
                "quotes": len(store.quotes),
                "clienti": len(store.anagrafiche.clienti),
                "fornitori": len(store.anagrafiche.fornitori),
            },
            discarded=self.discarded,
        )


class CompanyService:
    """Profilo ditta e saldo iniziale."""

    def set_company_name(self, store: Store, name: Any) -> Store:
        name = safe_trim(name)
        if not name:
            raise BusinessValidationError("La ragione sociale è obbligatoria")
        store.company_name = name
        logger.info("Ragione sociale aggiornata: %s", name)
        return store

    def set_company_logo(self, store: Store, data_url: Optional[str]) -> Store:
        data_url = safe_trim(data_url) or None
        if data_url is not None and not data_url.startswith("data:image/"):
            raise BusinessValidationError("Il logo deve essere un'immagine (data URL)")
        store.company_logo_data_url = data_url
        return store

    def update_company_info(self, store: Store, info: CompanyInfo) -> Store:
        store.company_info = CompanyInfo(
            address=safe_trim(info.address),
            piva=safe_trim(info.piva),
            phone=safe_trim(info.phone),
            email=safe_trim(info.email),
        )
        return store

    def set_initial_balance(self, store: Store, amount: Decimal) -> Store:
        if not amount.is_finite():
            raise BusinessValidationError("Saldo iniziale non valido")
        store.saldo_iniziale = parse_decimal(amount)
        logger.info("Saldo iniziale impostato a %s", amount)
        return store
