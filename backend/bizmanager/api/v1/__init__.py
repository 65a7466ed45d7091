"""
API v1 Routes
Progetto: BizManager Pro

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from bizmanager.api.v1 import jobs, movements, purchases, quotes, store

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(movements.router)
api_v1_router.include_router(jobs.router)
api_v1_router.include_router(purchases.router)
api_v1_router.include_router(quotes.router)
api_v1_router.include_router(store.router)

# Esportazione
__all__ = ["api_v1_router"]
