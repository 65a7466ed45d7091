"""
Configurazione Database - SQLAlchemy 2.0
Progetto: BizManager Pro

Definisce engine e session factory dello storage chiave-valore.
Il motore contabile è sincrono: ogni mutazione termina prima di
restituire il controllo, per cui anche l'accesso al database lo è.
"""

import logging

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bizmanager.core.config import settings

# Logger per questo modulo
logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Crea un engine SQLAlchemy per l'URL indicato.

    Per SQLite in memoria usa una StaticPool, altrimenti ogni connessione
    vedrebbe un database diverso.
    """
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            return create_engine(
                url, echo=echo, connect_args=connect_args, poolclass=StaticPool
            )
        return create_engine(url, echo=echo, connect_args=connect_args)
    return create_engine(url, echo=echo, pool_pre_ping=True)


# ------------------------------------------------------------
# Engine e Session Factory
# ------------------------------------------------------------
engine: Engine = build_engine(settings.storage_url, echo=settings.debug)

SessionLocal = sessionmaker(
    bind=engine,
    class_=Session,
    expire_on_commit=False,
    autoflush=False,
)


def init_db(bind: Engine = engine) -> None:
    """
    Crea le tabelle mancanti e verifica la connessione.

    Raises:
        SQLAlchemyError: se il database non è raggiungibile
    """
    from bizmanager.models import Base

    try:
        Base.metadata.create_all(bind)
        with bind.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Connessione allo storage stabilita con successo")
    except Exception as e:
        logger.error("Errore connessione storage: %s", e)
        raise


def close_db(bind: Engine = engine) -> None:
    """Chiude le connessioni al database. Da chiamare allo shutdown."""
    bind.dispose()
    logger.info("Connessioni storage chiuse")
