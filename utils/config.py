"""Configuration management for the book catalog validation service.

Provides:
- Config: base settings class with dict round-tripping
- AppConfig: API settings loaded from environment variables
- parse_reference_tables: parse the reference set -> table mapping
"""

import os as _os
from pathlib import Path
from typing import Any, Dict

from utils.reference import DEFAULT_REFERENCE_TABLES, is_valid_table_name

_LOG_FORMATS = ("text", "json")


class Config:
    """Base configuration class for organizing application settings."""

    def __init__(self):
        """Initialize configuration with default values."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            Config instance with values from dictionary
        """
        config = cls()
        for key, value in data.items():
            setattr(config, key, value)
        return config


def parse_reference_tables(raw: str) -> Dict[str, str]:
    """Parse ``"Zzz=zzz,Yyy=yyy"`` into ``{"Zzz": "zzz", "Yyy": "yyy"}``.

    Raises:
        ValueError: If an entry is malformed or a name is not an identifier
    """
    tables: Dict[str, str] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        set_name, sep, table = (part.strip() for part in entry.partition("="))
        if not sep or not set_name or not table:
            raise ValueError(f"Invalid reference table entry: {entry!r}")
        if not is_valid_table_name(table):
            raise ValueError(f"Invalid table name for {set_name!r}: {table!r}")
        tables[set_name] = table
    return tables


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have defaults so the service works without configuration.

    Environment variables:
        APP_DB_PATH: Path to the SQLite catalog database (default: book_catalog.sqlite)
        APP_PORT: API server port (default: 8000)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        APP_LOG_LEVEL: Root log level (default: INFO)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
        APP_REFERENCE_TABLES: Reference set to table mapping
            (default: Zzz=zzz,Yyy=yyy)
    """

    def __init__(self) -> None:
        super().__init__()
        self.db_path = Path(_os.getenv("APP_DB_PATH", "book_catalog.sqlite"))
        self.api_port = int(_os.getenv("APP_PORT", "8000"))
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text").lower()
        if self.log_format not in _LOG_FORMATS:
            raise ValueError(
                f"APP_LOG_FORMAT must be one of {_LOG_FORMATS}, got {self.log_format!r}"
            )
        self.log_level = _os.getenv("APP_LOG_LEVEL", "INFO").upper()
        raw_origins = _os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )
        raw_tables = _os.getenv("APP_REFERENCE_TABLES")
        self.reference_tables: Dict[str, str] = (
            dict(DEFAULT_REFERENCE_TABLES) if raw_tables is None
            else parse_reference_tables(raw_tables)
        )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
