"""Typed configuration models using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict, TomlConfigSettingsSource


class CrawlerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="COUNTERBASE_")

    directory_url: str = Field(default="", description="file://, http(s):// or path of the counter directory JSON")
    submit_url: str = Field(default="", description="http(s) submit endpoint; empty or duckdb: uses the local store")
    query_url: str = Field(default="", description="http(s) query endpoint; empty or duckdb: uses the local store")
    request_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")


class EcoVisioSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ECO_VISIO_")

    base_url: str = Field(default="https://www.eco-visio.net/api/aladdin/1.0.0")
    timezone: str = Field(default="America/Halifax", description="Timezone of datapoint timestamps")
    private_domains: str = Field(
        default="",
        description="Comma-separated private domain names, see EcoVisioDomainSettings",
    )

    @property
    def private_domain_names(self) -> list[str]:
        return [d.strip() for d in self.private_domains.split(",") if d.strip()]


class EcoVisioDomainSettings(BaseSettings):
    """Credentials for one private Eco-Visio domain.

    Loaded with a per-domain prefix, e.g. ``ECO_VISIO_HRM_USERNAME``.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    username: str = Field(default="")
    password: SecretStr = Field(default=SecretStr(""))
    user_id: str = Field(default="")
    domain_id: str = Field(default="")

    @property
    def is_complete(self) -> bool:
        return bool(self.username and self.password.get_secret_value() and self.domain_id)


def eco_visio_domain_settings(name: str) -> EcoVisioDomainSettings:
    """Load the credentials for a private domain from ECO_VISIO_<NAME>_* variables."""
    return EcoVisioDomainSettings(_env_prefix=f"ECO_VISIO_{name.upper()}_")


class HalifaxTransitSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HFXTRANSIT_")

    csv_url: str = Field(
        default="https://opendata.arcgis.com/datasets/a0ece3efdc7144d69cb1881b90cd93fe_0.csv",
        description="Daily ridership by route CSV",
    )
    timezone: str = Field(default="America/Halifax")


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_root: Path = Field(default=Path("data"), description="Root directory for local data")
    duckdb_filename: str = Field(default="counterbase.duckdb")

    @property
    def duckdb_path(self) -> Path:
        return self.data_root / self.duckdb_filename


class ApiSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=5000)


class AppSettings(BaseSettings):
    """Top-level settings composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        toml_file="counterbase.toml",
        extra="ignore",
    )

    crawler: CrawlerSettings = Field(default_factory=CrawlerSettings)
    eco_visio: EcoVisioSettings = Field(default_factory=EcoVisioSettings)
    hfxtransit: HalifaxTransitSettings = Field(default_factory=HalifaxTransitSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False, description="Render log records as JSON lines")

    @classmethod
    def settings_customise_sources(cls, settings_cls, **kwargs):  # type: ignore[override]
        return (
            kwargs["env_settings"],
            kwargs["dotenv_settings"],
            TomlConfigSettingsSource(settings_cls),
            kwargs["init_settings"],
        )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Resolve settings once per process: env > .env > counterbase.toml > defaults."""
    return AppSettings()
