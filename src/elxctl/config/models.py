"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, elxctl.toml only contains overrides.
A fresh installation needs no config file at all; the ``log`` mail
transport and a local SQLite file work out of the box.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# --- elxctl.toml sections ---


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    path: Path = Path(".elxctl/elxctl.db")


class ReferencesConfig(BaseModel):
    """[references] section."""

    model_config = {"frozen": True}

    prefix: str = "ELX"
    min_digits: int = Field(default=4, ge=1, le=12)
    max_attempts: int = Field(default=100, ge=1)

    @field_validator("prefix")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()


class ScannerConfig(BaseModel):
    """[scanner] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    interval_seconds: float = Field(default=60.0, gt=0)
    kinds: list[Literal["pending", "delivered"]] = Field(
        default_factory=lambda: ["pending", "delivered"]
    )


class MailConfig(BaseModel):
    """[mail] section.

    ``transport = "log"`` writes messages to the log instead of sending;
    ``transport = "http"`` posts them to a JSON mail API at ``api_url``.
    """

    model_config = {"frozen": True}

    transport: Literal["log", "http"] = "log"
    api_url: str = "https://api.resend.com"
    api_key: str | None = None
    from_address: str = "no-reply@ellcworth.com"
    support_address: str = "support@ellcworth.com"
    timeout_seconds: float = Field(default=30.0, gt=0)


class PricingConfig(BaseModel):
    """[pricing] section."""

    model_config = {"frozen": True}

    currency: str = "GBP"
