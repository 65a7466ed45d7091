"""
Modello SQLAlchemy per lo storage chiave-valore
Progetto: BizManager Pro
"""

import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from bizmanager.models import Base


class StorageEntry(Base):
    """
    Una coppia chiave-valore dello storage.

    Il valore è il documento di stato serializzato: viene sempre
    riscritto per intero, mai aggiornato parzialmente.
    """
    __tablename__ = "storage_entries"

    key: Mapped[str] = mapped_column(
        String(200), primary_key=True, doc="Chiave di storage"
    )
    value: Mapped[str] = mapped_column(
        Text, nullable=False, doc="Documento serializzato"
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        doc="Ultima scrittura del valore",
    )

    def __repr__(self) -> str:
        return f"<StorageEntry(key={self.key!r}, size={len(self.value or '')})>"
