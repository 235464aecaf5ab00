"""Contact Store — Configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. Environment variables prefixed with CONTACTS_ (``__`` for nesting)
    3. User config:     ~/.contact-store/config.yaml
    4. Explicit config: the file passed to ``Settings.load()``

Call ``Settings.load()`` once at startup and pass the instance (or the store
built from it) to whatever needs it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class StorageConfig(BaseModel):
    backend: Literal["memory", "sqlite", "file"] = Field(
        default="sqlite",
        description="Key-value provider holding the durable collection.",
    )
    key: str = Field(
        default="contacts",
        min_length=1,
        description="Name of the slot the whole collection is serialized into.",
    )
    db_path: Path = Path("~/.contact-store/contacts.db")
    file_path: Path = Path("~/.contact-store/contacts.json")

    @field_validator("db_path", "file_path", mode="after")
    @classmethod
    def expand_paths(cls, v: Path) -> Path:
        return v.expanduser()


class SeedConfig(BaseModel):
    file: Path | None = Field(
        default=None,
        description=(
            "JSON or YAML list of contact records used instead of the built-in "
            "seed set. None = built-in seed."
        ),
    )


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "warning"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CONTACTS_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    seed: SeedConfig = Field(default_factory=SeedConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from YAML files + environment variables."""
        import yaml

        data: dict[str, object] = {}

        candidates = [Path.home() / ".contact-store" / "config.yaml"]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)


# Module-level singleton, replaced by ``Settings.load()`` at startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings | None) -> None:
    """Replace the module-level singleton. Used in tests and by the CLI."""
    global _settings
    _settings = settings
