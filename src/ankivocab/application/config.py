from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class AppConfig(BaseSettings):
    """
    Configuration model for ankivocab.
    Supports loading from:
    1. Environment variables (ANKIVOCAB_*)
    2. Config file (~/.config/ankivocab/config.toml)
    3. Manual overrides (CLI / HTTP)
    """

    model_config = SettingsConfigDict(
        env_prefix="ANKIVOCAB_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".config/ankivocab/data")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/ankivocab/logs")

    # Store
    storage_backend: Literal["file", "memory"] = "file"
    storage_key: str = "anki_data"

    # Import / export defaults
    default_tier: Literal["mastered", "familiar", "learning", "new"] = "new"
    export_deck_name: str = "Vocabulary"

    verbose: int = 1

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

        # Re-evaluate HOME so tests can relocate it.
        home = Path.home()
        candidates = [home / ".config/ankivocab/config.toml", home / ".ankivocab.toml"]
        toml_file = next((f for f in candidates if f.exists()), None)

        # Earlier sources win: overrides > env > config file > defaults
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/ankivocab/config.toml (if exists)
    3. Environment variables (ANKIVOCAB_*)
    4. cli_overrides (passed from Typer or the HTTP layer); None values are ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
