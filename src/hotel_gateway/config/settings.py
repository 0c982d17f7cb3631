"""Runtime configuration for the gateway.

Relies on pydantic-settings so that environment variables (prefixed with ``GATEWAY_``)
can override defaults. See `.env.example` for common values.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

PROD_PROVIDER_KEY = "metasphere-prod"
UAT_PROVIDER_KEY = "metasphere-uat"


class Settings(BaseSettings):
    """Captures runtime configuration for the gateway."""

    app_key: Optional[str] = Field(default=None, description="Metasphere application key")
    app_secret: Optional[str] = Field(default=None, description="Metasphere application secret")

    prod_base_url: str = Field(
        default="https://servicehub.metasphere.global:8966/api/",
        description="Base URL of the production CRM environment",
    )
    uat_base_url: str = Field(
        default="https://crm.metasphere.global:8958/api/",
        description="Base URL of the UAT CRM environment",
    )
    token_path: str = Field(default="getToken", description="Token endpoint, relative to a base URL")
    default_provider: str = Field(default=PROD_PROVIDER_KEY)
    provider_catalog_path: Optional[Path] = Field(
        default=None, description="Optional TOML file that adds or overrides providers"
    )

    token_expiry_skew_s: float = Field(
        default=120.0, description="Seconds subtracted from a token's expiry before it is treated as stale"
    )
    token_default_ttl_s: int = Field(
        default=7200, description="Token lifetime assumed when the identity endpoint omits one"
    )
    token_timeout_s: float = Field(default=15.0, description="Timeout for credential issuance calls")
    request_timeout_s: float = Field(default=30.0, description="Timeout for CRM business calls")
    verify_tls: bool = Field(
        default=True,
        description="Verify upstream TLS certificates; the UAT hosts use self-signed certificates",
    )

    hotel_code: str = Field(default="CBE", description="Hotel code used for availability lookups")
    default_currency: str = Field(default="CAD")
    availability_window_days: int = Field(
        default=90, description="Upstream cap on the number of days per status query"
    )
    room_type_lookahead_days: int = Field(
        default=30, description="Days scanned when listing the room types of a hotel"
    )

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    @field_validator("log_dir", mode="before")
    def _expand_log_dir(cls, value: str | Path) -> Path:  # noqa: D401
        if isinstance(value, Path):
            return value
        return Path(value).expanduser()

    @field_validator("provider_catalog_path", mode="before")
    def _expand_catalog_path(cls, value: str | Path | None) -> Optional[Path]:
        if value in (None, ""):
            return None
        return Path(value).expanduser()

    @field_validator("prod_base_url", "uat_base_url")
    def _ensure_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("base URLs must not be empty")
        return value if value.endswith("/") else f"{value}/"

    @field_validator("default_currency")
    def _upper_currency(cls, value: str) -> str:
        return (value or "CAD").strip().upper()

    @field_validator("token_expiry_skew_s")
    def _validate_skew(cls, value: float) -> float:
        if value < 0:
            raise ValueError("token_expiry_skew_s must not be negative")
        return value

    @field_validator("token_default_ttl_s", "availability_window_days", "room_type_lookahead_days")
    def _validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be positive")
        return value
