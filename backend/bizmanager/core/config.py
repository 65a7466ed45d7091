"""
Impostazioni di BizManager Pro.

Lette da variabili d'ambiente con prefisso BIZMANAGER_ (o da .env).
I default vanno bene per un'installazione locale su un solo dispositivo.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_HOSTS = ("localhost", "127.0.0.1")


class Settings(BaseSettings):
    """
    Impostazioni del processo, immutabili dopo il caricamento.

    Nel codice applicativo si usa il modulo-level `settings`; nei test
    si costruisce un Settings esplicito o si svuota la cache di
    get_settings().
    """

    model_config = SettingsConfigDict(
        env_prefix="BIZMANAGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------
    storage_url: str = Field(
        default="sqlite:///./bizmanager.db",
        description="URL SQLAlchemy (driver sincrono) del database chiave-valore",
    )
    storage_key: str = Field(
        default="bizmanagerpro_state_v2",
        description="Chiave del documento di stato",
    )

    # ------------------------------------------------------------
    # Applicazione
    # ------------------------------------------------------------
    app_name: str = Field(default="BizManager Pro", description="Nome mostrato nelle API")
    app_version: str = Field(default="2.0.0", description="Versione esposta da /health")
    app_env: Literal["development", "production", "testing"] = Field(
        default="development",
        description="Ambiente di esecuzione",
    )
    debug: bool = Field(default=False, description="Abilita /docs e l'echo SQL")
    export_app_name: str = Field(
        default="BizManagerPro",
        description="Valore del campo app nei backup esportati",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Origini ammesse dal middleware CORS",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Livello del root logger",
    )

    # ------------------------------------------------------------
    # Default del gestionale
    # ------------------------------------------------------------
    default_company_name: str = Field(default="La tua ditta")
    default_payment_method: str = Field(default="bonifico")
    default_unit: str = Field(default="pz", description="Unità delle righe lavoro")
    default_vat_rate: Decimal = Field(
        default=Decimal("22"),
        description="Aliquota IVA delle nuove righe preventivo",
    )

    # ------------------------------------------------------------
    # Frasi di conferma
    # ------------------------------------------------------------
    reset_confirm_phrase: str = Field(default="RESET", description="Azzeramento totale")
    delete_confirm_phrase: str = Field(
        default="ELIMINA",
        description="Eliminazione a cascata o di un preventivo bloccato",
    )

    @field_validator("default_vat_rate", mode="before")
    @classmethod
    def parse_vat_rate(cls, v):
        """Accetta anche la virgola decimale ("22,5")."""
        if isinstance(v, str):
            return Decimal(v.strip().replace(",", "."))
        return v

    @field_validator("reset_confirm_phrase", "delete_confirm_phrase")
    @classmethod
    def normalize_phrase(cls, v: str) -> str:
        phrase = v.strip().upper()
        if not phrase:
            raise ValueError("La frase di conferma non può essere vuota")
        return phrase

    @model_validator(mode="after")
    def check_production(self) -> "Settings":
        """In produzione niente debug e niente origini locali."""
        if self.app_env != "production":
            return self

        problems = []
        if self.debug:
            problems.append("debug attivo")
        problems.extend(
            f"origine CORS locale {origin!r}"
            for origin in self.cors_origins
            if any(host in origin for host in LOCAL_HOSTS)
        )
        if problems:
            raise ValueError("Configurazione non valida in produzione: " + ", ".join(problems))
        return self


@lru_cache()
def get_settings() -> Settings:
    """Settings condivise dal processo (cache_clear() per ricaricarle)."""
    return Settings()


settings = get_settings()
