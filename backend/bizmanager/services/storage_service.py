"""
Service Layer per lo Storage chiave-valore
Progetto: BizManager Pro

Lo stato viene salvato come un unico documento sotto una chiave.
Il contratto è minimo (get/set/remove) e non solleva mai eccezioni
verso il chiamante: se il database non risponde lo storage passa
in modalità degradata, usando un dizionario in memoria fino alla
chiusura del processo.
"""

import logging
from typing import Callable, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bizmanager.models import StorageEntry

# Logger per questo modulo
logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Porta di persistenza usata dallo StoreService."""

    @property
    def degraded(self) -> bool: ...

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Storage in memoria: usato nei test e come ripiego dello storage SQL."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    @property
    def degraded(self) -> bool:
        return False

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SqlStorage:
    """
    Storage su tabella SQLAlchemy `storage_entries`.

    Al primo errore del database passa definitivamente al dizionario
    in memoria, così letture e scritture successive restano coerenti
    tra loro. Lo stato degradato è esposto tramite `degraded` perché
    il chiamante possa avvisare l'utente che i dati non sono durevoli.

    Usage:
        storage = SqlStorage(SessionLocal)
        storage.set("chiave", "{...}")
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._fallback = MemoryStorage()
        self._degraded = False

    @property
    def degraded(self) -> bool:
        return self._degraded

    def _degrade(self, operation: str, key: str, exc: SQLAlchemyError) -> None:
        logger.warning(
            "Storage non disponibile durante %s(%s), passo alla memoria: %s",
            operation,
            key,
            exc,
        )
        self._degraded = True

    def get(self, key: str) -> Optional[str]:
        if self._degraded:
            return self._fallback.get(key)
        try:
            with self._session_factory() as session:
                entry = session.get(StorageEntry, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            self._degrade("get", key, e)
            return self._fallback.get(key)

    def set(self, key: str, value: str) -> None:
        if self._degraded:
            self._fallback.set(key, value)
            return
        try:
            with self._session_factory() as session:
                entry = session.get(StorageEntry, key)
                if entry is None:
                    session.add(StorageEntry(key=key, value=value))
                else:
                    entry.value = value
                session.commit()
            logger.debug("Salvato documento %s (%d caratteri)", key, len(value))
        except SQLAlchemyError as e:
            self._degrade("set", key, e)
            self._fallback.set(key, value)

    def remove(self, key: str) -> None:
        if self._degraded:
            self._fallback.remove(key)
            return
        try:
            with self._session_factory() as session:
                entry = session.get(StorageEntry, key)
                if entry is not None:
                    session.delete(entry)
                    session.commit()
        except SQLAlchemyError as e:
            self._degrade("remove", key, e)
            self._fallback.remove(key)
