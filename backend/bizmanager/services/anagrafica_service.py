"""
Service Layer per le Anagrafiche
Progetto: BizManager Pro

Registri dei nomi di clienti e fornitori: inserimento idempotente,
nessun duplicato, ordinamento alfabetico italiano.
"""

import logging

from bizmanager.core.utils import safe_trim, unique_sorted_names
from bizmanager.schemas.store import Anagrafiche, AnagraficaKind, Store

# Logger per questo modulo
logger = logging.getLogger(__name__)


class AnagraficaService:
    """Service per i registri clienti/fornitori."""

    def get_all(self, store: Store) -> Anagrafiche:
        return store.anagrafiche

    def upsert_anagrafica(self, store: Store, tipo: AnagraficaKind, nome: str) -> bool:
        """
        Aggiunge il nome al registro indicato se non è già presente.

        Returns:
            True se il registro è stato modificato
        """
        nome = safe_trim(nome)
        if not nome:
            return False

        if tipo == AnagraficaKind.FORNITORE:
            names = store.anagrafiche.fornitori
        else:
            names = store.anagrafiche.clienti
        if nome in names:
            return False

        names[:] = unique_sorted_names([*names, nome])
        logger.info("Anagrafica %s aggiornata: %s", tipo.value, nome)
        return True
