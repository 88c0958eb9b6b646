"""
Tests for utils/config.py: Config, AppConfig, parse_reference_tables.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.config import AppConfig, Config, parse_reference_tables

_ENV_VARS = (
    "APP_DB_PATH", "APP_PORT", "APP_HOST", "APP_LOG_FORMAT", "APP_LOG_LEVEL",
    "APP_CORS_ORIGINS", "APP_REFERENCE_TABLES",
)


@pytest.fixture()
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestAppConfig:
    def test_defaults(self, clean_env):
        cfg = AppConfig.from_env()
        assert cfg.db_path == Path("book_catalog.sqlite")
        assert cfg.api_port == 8000
        assert cfg.api_host == "127.0.0.1"
        assert cfg.log_format == "text"
        assert cfg.log_level == "INFO"
        assert cfg.cors_origins == ["*"]
        assert cfg.reference_tables == {"Zzz": "zzz", "Yyy": "yyy"}

    def test_env_overrides(self, clean_env):
        clean_env.setenv("APP_DB_PATH", "/data/catalog.sqlite")
        clean_env.setenv("APP_PORT", "9000")
        clean_env.setenv("APP_LOG_FORMAT", "JSON")
        clean_env.setenv("APP_LOG_LEVEL", "debug")
        clean_env.setenv("APP_CORS_ORIGINS", "https://a.example, https://b.example")
        clean_env.setenv("APP_REFERENCE_TABLES", "Zzz=publishers,Yyy=formats")
        cfg = AppConfig.from_env()
        assert cfg.db_path == Path("/data/catalog.sqlite")
        assert cfg.api_port == 9000
        assert cfg.log_format == "json"
        assert cfg.log_level == "DEBUG"
        assert cfg.cors_origins == ["https://a.example", "https://b.example"]
        assert cfg.reference_tables == {"Zzz": "publishers", "Yyy": "formats"}

    def test_invalid_log_format(self, clean_env):
        clean_env.setenv("APP_LOG_FORMAT", "xml")
        with pytest.raises(ValueError):
            AppConfig.from_env()

    def test_invalid_port(self, clean_env):
        clean_env.setenv("APP_PORT", "eighty")
        with pytest.raises(ValueError):
            AppConfig.from_env()

    def test_to_dict(self, clean_env):
        d = AppConfig.from_env().to_dict()
        assert "db_path" in d
        assert "reference_tables" in d

    def test_from_dict(self):
        cfg = Config.from_dict({"db_path": "x.sqlite", "api_port": 1})
        assert cfg.db_path == "x.sqlite"
        assert cfg.api_port == 1


class TestParseReferenceTables:
    def test_basic(self):
        assert parse_reference_tables("Zzz=zzz,Yyy=yyy") == {"Zzz": "zzz", "Yyy": "yyy"}

    def test_whitespace_and_empty_entries(self):
        assert parse_reference_tables(" Zzz = zzz , , ") == {"Zzz": "zzz"}

    def test_empty(self):
        assert parse_reference_tables("") == {}

    @pytest.mark.parametrize("raw", ["Zzz", "=zzz", "Zzz=", "Zzz=zzz-table"])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_reference_tables(raw)
