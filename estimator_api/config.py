# estimator_api/config.py
from __future__ import annotations

import os
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

AuditBackend = Literal["ledger", "snapshot"]


class Settings(BaseSettings):
    # --- Identity / Build ---
    APP_NAME: str = Field(default="COVID-19 Estimator API")
    ENV: str = Field(default="dev")
    VERSION: str = Field(default=APP_VERSION)

    # --- HTTP surface ---
    API_VERSION: int = Field(default=1, ge=1)
    API_BASE_PATH: str = Field(default="")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000, ge=0, le=65535)

    # --- Audit & fault logs ---
    AUDIT_BACKEND: AuditBackend = Field(
        default="ledger",
        description="ledger: one NDJSON line per record; snapshot: one JSON map rewritten per write",
    )
    AUDIT_LOG_FILE: str = Field(default="./audit-log.txt")
    FAULT_LOG_FILE: str = Field(default="./error-log.txt")

    # --- Logging ---
    LOG_JSON: bool = Field(default=True)
    LOG_LEVEL: str = Field(default="INFO")

    model_config = {
        "extra": "ignore",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @field_validator("AUDIT_BACKEND", mode="before")
    @classmethod
    def _normalize_backend(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() or "ledger"
        return value

    @field_validator("API_BASE_PATH")
    @classmethod
    def _normalize_base_path(cls, value: str) -> str:
        text = value.strip()
        if not text:
            return ""
        return "/" + text.strip("/")

    @property
    def base_path(self) -> str:
        """Versioned prefix every estimator route hangs off."""
        return self.API_BASE_PATH or f"/api/v{self.API_VERSION}/on-covid-19"


def get_settings() -> Settings:
    return Settings()
