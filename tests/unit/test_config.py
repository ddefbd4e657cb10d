"""
Unit tests for configuration helpers.
"""

from balance_ledger.config import Settings, _env, _env_bool
from balance_ledger.db import _normalize_database_url


class TestEnv:
    def test_plain_value_wins(self, monkeypatch):
        monkeypatch.setenv("LEDGER_TEST_KEY", "  direct  ")
        assert _env("LEDGER_TEST_KEY", "default") == "direct"

    def test_file_secret(self, monkeypatch, tmp_path):
        secret = tmp_path / "secret"
        secret.write_text("from-file\n", encoding="utf-8")
        monkeypatch.delenv("LEDGER_TEST_KEY", raising=False)
        monkeypatch.setenv("LEDGER_TEST_KEY_FILE", str(secret))
        assert _env("LEDGER_TEST_KEY", "default") == "from-file"

    def test_missing_file_falls_back_to_default(self, monkeypatch, tmp_path):
        monkeypatch.delenv("LEDGER_TEST_KEY", raising=False)
        monkeypatch.setenv("LEDGER_TEST_KEY_FILE", str(tmp_path / "absent"))
        assert _env("LEDGER_TEST_KEY", "default") == "default"

    def test_bool(self, monkeypatch):
        monkeypatch.setenv("LEDGER_TEST_FLAG", "yes")
        assert _env_bool("LEDGER_TEST_FLAG", False) is True
        monkeypatch.setenv("LEDGER_TEST_FLAG", "off")
        assert _env_bool("LEDGER_TEST_FLAG", True) is False
        monkeypatch.delenv("LEDGER_TEST_FLAG")
        assert _env_bool("LEDGER_TEST_FLAG", True) is True


class TestSettings:
    def test_is_production(self):
        assert Settings(environment="Production").is_production
        assert Settings(environment="prod").is_production
        assert not Settings(environment="development").is_production


class TestDatabaseUrl:
    def test_postgres_scheme_uses_psycopg(self):
        assert (
            _normalize_database_url("postgres://u:p@db:5432/ledger")
            == "postgresql+psycopg://u:p@db:5432/ledger"
        )
        assert (
            _normalize_database_url("postgresql://u:p@db/ledger")
            == "postgresql+psycopg://u:p@db/ledger"
        )

    def test_explicit_driver_and_sqlite_untouched(self):
        assert (
            _normalize_database_url("postgresql+psycopg://db/ledger")
            == "postgresql+psycopg://db/ledger"
        )
        assert _normalize_database_url("sqlite:///ledger.db") == "sqlite:///ledger.db"
