from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from cardwise.domain.constants import DEFAULT_CHUNK_SIZE, MAX_CHUNK_SIZE, MIN_CHUNK_SIZE
from cardwise.domain.models import AnswerType, QuizMode, RigorLevel


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/cardwise/config.toml",
        Path.home() / ".cardwise.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for cardwise.
    Supports loading from:
    1. Environment variables (CARDWISE_*)
    2. Config file (~/.config/cardwise/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="CARDWISE_",
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/cardwise")
    storage: Literal["json", "memory"] = "json"
    user_id: str = "local"
    # Server-side deck files may only be loaded from here (None disables deck_path)
    decks_dir: Path | None = None

    # Study defaults (per-set saved preferences take precedence)
    rigor: RigorLevel = RigorLevel.BALANCED
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=MIN_CHUNK_SIZE, le=MAX_CHUNK_SIZE)
    quiz_mode: QuizMode = QuizMode.BOTH
    answer_type: AnswerType = AnswerType.SHORT_ANSWER

    # Fixed seed for reproducible question order (None = random)
    seed: int | None = None
    # Log verbosity used when the CLI is run without -v (0 warnings, 1 info, 2+ debug)
    verbose: int = Field(default=0, ge=0)

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

        toml_file = next((f for f in config_files() if f.exists()), None)

        # Earlier sources win: CLI overrides > env > TOML
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", "decks_dir", mode="before")
    @classmethod
    def resolve_dirs(cls, v: Any) -> Path | None:
        if v is None:
            return None
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/cardwise/config.toml (if exists)
    3. Environment variables (CARDWISE_*)
    4. cli_overrides (passed from Typer; None values are dropped)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
