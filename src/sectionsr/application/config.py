from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from sectionsr.domain.constants import DEFAULT_UPCOMING_LIMIT


def config_file_path() -> Path:
    return Path.home() / ".config/sectionsr/config.toml"


class AppConfig(BaseSettings):
    """
    Application configuration for sectionsr.
    Supports loading from:
    1. Environment variables (SECTIONSR_*)
    2. Config file (~/.config/sectionsr/config.toml)
    3. Manual overrides (CLI / server)
    """

    model_config = SettingsConfigDict(
        env_prefix="SECTIONSR_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/sectionsr")
    items_file: Path | None = None
    settings_file: Path | None = None

    # Queues
    upcoming_limit: int = DEFAULT_UPCOMING_LIMIT
    order_mode: Literal["prioritized", "mixed"] | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Explicit overrides win, then env, then the TOML file
        config_file = config_file_path()
        if config_file.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=config_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("items_file", "settings_file", mode="before")
    @classmethod
    def resolve_file(cls, v: Any) -> Path | None:
        if not v:
            return None
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/sectionsr/config.toml (if exists)
    3. Environment variables (SECTIONSR_*)
    4. cli_overrides (passed from Typer or the server)

    Store paths that were not given explicitly live under ``data_dir``.
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.items_file is None:
        config.items_file = config.data_dir / "items.yaml"
    if config.settings_file is None:
        config.settings_file = config.data_dir / "settings.yaml"

    return config
