"""Configuration file loading and validation."""

import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from .consts import DATABASE_PATH, LOG_FILE_DEFAULT, SAVE_ACTION_LOG_THROTTLE, SAVE_DELAY
from .enums import StoreType
from .errors import ConfigException, format_validation_error

logger = logging.getLogger(__name__)


class DraftConfig(BaseModel):
    """Draft controller configuration."""

    save_delay: float = Field(default=SAVE_DELAY, gt=0)
    flush_on_dispose: bool = False
    action_log_throttle: float = Field(default=SAVE_ACTION_LOG_THROTTLE, ge=0)


class StoreConfig(BaseModel):
    """Backing document store configuration."""

    type: StoreType = StoreType.MEMORY
    path: str = Field(default=DATABASE_PATH)

    @model_validator(mode="after")
    def validate_store_config(self) -> "StoreConfig":
        if self.type == StoreType.SQLITE and not self.path.strip():
            raise ValueError("store.path is required when store.type is sqlite")
        return self


class Config(BaseSettings):
    """Application configuration."""

    user: str = Field(default="")
    log_file: str = Field(default=LOG_FILE_DEFAULT)
    log_level: str = Field(default="INFO")

    draft: DraftConfig = Field(default_factory=DraftConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    model_config = SettingsConfigDict(
        env_prefix="DRAFTKIT_",
        env_nested_delimiter="__",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: '{v}'")
        return level

    @field_validator("user", mode="before")
    @classmethod
    def strip_user(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )

    @classmethod
    def load_from_file(cls, config_path: Path | str) -> "Config":
        """Reads ``config_path`` as TOML. ``DRAFTKIT_*`` variables still take precedence."""
        path = Path(config_path)
        if not path.is_file():
            raise ConfigException(f"Configuration file not found: {config_path}")

        class FileConfig(cls):
            model_config = {**cls.model_config, "toml_file": path}

        try:
            config = FileConfig()
        except ValidationError as e:
            raise ConfigException(
                format_validation_error("Configuration validation failed:", e)
            ) from e
        except ValueError as e:
            raise ConfigException(f"Invalid configuration file {config_path}: {e}") from e

        logger.debug(f"Loaded configuration from {path}")
        return config
