"""
Dependency Injection per lo Store
Progetto: BizManager Pro

La LedgerSession viene creata allo startup (vedi main.lifespan) e
condivisa da tutte le richieste: le route la ricevono con Depends.
"""

from fastapi import Request

from bizmanager.services.store_service import LedgerSession


def get_ledger(request: Request) -> LedgerSession:
    """
    Dependency che restituisce la sessione dello Store.

    Nei test viene sostituita tramite app.dependency_overrides.
    """
    return request.app.state.ledger


__all__ = [
    "get_ledger",
]
