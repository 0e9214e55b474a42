"""Marketplace server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class MarketplaceServerSettings(BaseSettings):
    model_config = {"env_prefix": "MARKET_"}

    log_dir: str = "backend/logs/marketplace"
    cors_origins: list[str] = []

    # Per-client preference files; unset keeps client storage in memory
    client_storage_dir: str | None = None
    client_ttl_seconds: int = Field(default=86400, gt=0)

    search_page_size: int = Field(default=12, ge=1, le=100)
    search_debounce_seconds: float = Field(default=0.5, ge=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v, allow_empty=True)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            StringListEnvSettingsSource(settings_cls, frozenset({"cors_origins"})),
            dotenv_settings,
            file_secret_settings,
        )
