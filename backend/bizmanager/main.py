"""
Applicazione FastAPI di BizManager Pro.

Carica lo Store allo startup e lo espone ai router tramite app.state.ledger.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from bizmanager.api.v1 import api_v1_router
from bizmanager.core.config import settings
from bizmanager.core.database import SessionLocal, close_db, init_db
from bizmanager.core.deps import get_ledger
from bizmanager.core.exceptions import AppException
from bizmanager.services.storage_service import SqlStorage
from bizmanager.services.store_service import LedgerSession

# ------------------------------------------------------------
# Configurazione Logging
# ------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Lifespan Handler
# ------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup e shutdown del processo.

    All'avvio crea la tabella di storage e carica lo Store;
    alla chiusura rilascia il pool di connessioni.
    """
    logger.info("Avvio %s v%s", settings.app_name, settings.app_version)
    try:
        init_db()
    except SQLAlchemyError:
        # Lo storage passerà in memoria al primo accesso
        logger.error("Storage non inizializzato: i dati non saranno persistenti")

    app.state.ledger = LedgerSession(SqlStorage(SessionLocal))
    if app.state.ledger.discarded:
        logger.warning(
            "Caricamento con %d record scartati", len(app.state.ledger.discarded)
        )
    logger.info("Store caricato (%d lavori)", len(app.state.ledger.store.jobs))

    yield

    logger.info("Arresto in corso")
    close_db()
    logger.info("Storage chiuso")


# ------------------------------------------------------------
# FastAPI Application
# ------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    description="Gestionale cassa, lavori, acquisti e preventivi - Backend API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Errori applicativi: status della classe e corpo {detail, error_code, extra}."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_content(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Qualsiasi altra eccezione diventa un 500 generico, con traceback nel log."""
    logger.error("Eccezione non gestita su %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Errore interno del server"},
    )


# ------------------------------------------------------------
# Middleware CORS
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------
@app.get(
    "/health",
    name="Health Check",
    summary="Controlla lo stato dell'applicazione",
    tags=["System"],
)
async def health_check(ledger: LedgerSession = Depends(get_ledger)) -> dict:
    """
    Stato del processo e dello storage.

    `storage_degraded` è True quando i dati vivono solo in memoria.
    """
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
        "storage_degraded": ledger.storage_degraded,
    }


# ------------------------------------------------------------
# Router
# ------------------------------------------------------------
app.include_router(api_v1_router)
