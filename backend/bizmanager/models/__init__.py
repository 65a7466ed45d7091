"""
Modelli Database SQLAlchemy
Progetto: BizManager Pro

Il gestionale salva l'intero stato come un unico documento JSON:
l'unica tabella è lo storage chiave-valore che lo contiene.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from bizmanager.models.storage_entry import StorageEntry

__all__ = [
    "Base",
    "StorageEntry",
]
