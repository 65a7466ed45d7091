"""
API Routes
Progetto: BizManager Pro

Modulo per l'aggregazione dei router versionati.
"""

from bizmanager.api.v1 import api_v1_router

# Esportazione router
__all__ = ["api_v1_router"]
