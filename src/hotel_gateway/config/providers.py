"""Provider catalog: the upstream environments that each own a token lifecycle."""
from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Iterable, Mapping, Optional, TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:  # pragma: no cover
    from hotel_gateway.config.settings import Settings

logger = logging.getLogger(__name__)


class ProviderConfig(BaseModel):
    """Connection details for one upstream provider."""

    key: str
    base_url: str
    token_path: str = "getToken"
    app_key: Optional[str] = None
    app_secret: Optional[str] = None
    label: Optional[str] = None

    @field_validator("key")
    @classmethod
    def _strip_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("provider key must not be empty")
        return value

    @field_validator("base_url")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        return value if value.endswith("/") else f"{value}/"

    @property
    def token_url(self) -> str:
        return f"{self.base_url}{self.token_path.lstrip('/')}"

    def endpoint(self, name: str) -> str:
        return f"{self.base_url}{name.lstrip('/')}"


class _CatalogFile(BaseModel):
    providers: dict[str, dict[str, object]] = Field(default_factory=dict)


class ProviderCatalog:
    """Resolves provider keys to their configuration."""

    def __init__(self, providers: Mapping[str, ProviderConfig], *, source: Optional[Path] = None) -> None:
        self._providers = dict(providers)
        self._source = source

    @property
    def source(self) -> Optional[Path]:
        return self._source

    def get(self, key: str) -> ProviderConfig:
        try:
            return self._providers[key]
        except KeyError as exc:
            known = ", ".join(sorted(self._providers))
            raise KeyError(f"Provider '{key}' is not configured. Known providers: {known}") from exc

    def keys(self) -> Iterable[str]:
        return self._providers.keys()

    def values(self) -> Iterable[ProviderConfig]:
        return self._providers.values()

    def __contains__(self, key: object) -> bool:
        return key in self._providers

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ProviderCatalog":
        """Build the catalog from settings, layering the optional TOML file on top."""
        from hotel_gateway.config.settings import PROD_PROVIDER_KEY, UAT_PROVIDER_KEY

        providers: dict[str, ProviderConfig] = {
            PROD_PROVIDER_KEY: ProviderConfig(
                key=PROD_PROVIDER_KEY,
                base_url=settings.prod_base_url,
                token_path=settings.token_path,
                app_key=settings.app_key,
                app_secret=settings.app_secret,
                label="Production",
            ),
            UAT_PROVIDER_KEY: ProviderConfig(
                key=UAT_PROVIDER_KEY,
                base_url=settings.uat_base_url,
                token_path=settings.token_path,
                app_key=settings.app_key,
                app_secret=settings.app_secret,
                label="UAT",
            ),
        }
        path = settings.provider_catalog_path
        if path is None:
            return cls(providers)
        if not path.exists():
            raise FileNotFoundError(f"Provider catalog not found at {path}")

        data = _CatalogFile.model_validate(tomllib.loads(path.read_text()))
        for key, overrides in data.providers.items():
            base = providers.get(key)
            merged: dict[str, object] = base.model_dump() if base else {
                "token_path": settings.token_path,
                "app_key": settings.app_key,
                "app_secret": settings.app_secret,
            }
            merged.update(overrides)
            merged["key"] = key
            providers[key] = ProviderConfig.model_validate(merged)
            logger.debug("Loaded provider %s from %s", key, path)
        return cls(providers, source=path)
