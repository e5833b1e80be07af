"""Tests for marketplace_config: YAML loading, parsing and env overrides."""

import textwrap

import pytest
import yaml

from marketplace_config import DEFAULT_CONFIG_PATH, get_settings
from marketplace_config.loader import apply_env_overrides, load_yaml_file, parse_settings
from marketplace_config.schema import MarketplaceSettings


def write(tmp_path, body: str):
    path = tmp_path / "settings.yaml"
    path.write_text(textwrap.dedent(body))
    return path


class TestParseSettings:

    def test_full_document(self):
        settings = parse_settings({
            "database": {
                "url": "postgresql://u:p@db/marketplace",
                "echo": True,
                "pool": {"size": 8, "max_overflow": 2, "timeout": 5, "recycle": 60},
            },
            "logging": {"level": "debug"},
        })

        assert settings == MarketplaceSettings(
            database_url="postgresql://u:p@db/marketplace",
            echo=True,
            pool_size=8,
            max_overflow=2,
            pool_timeout=5,
            pool_recycle=60,
            log_level="DEBUG",
        )

    def test_defaults_for_optional_keys(self):
        settings = parse_settings({"database": {"url": "sqlite://"}})
        assert settings.pool_size == 5
        assert settings.log_level == "INFO"
        assert settings.is_sqlite

    def test_missing_url(self):
        with pytest.raises(KeyError):
            parse_settings({"database": {"echo": False}})

    def test_wrong_type(self):
        with pytest.raises(ValueError):
            parse_settings({"database": {"url": "sqlite://", "pool": {"size": "big"}}})

    def test_unknown_log_level(self):
        with pytest.raises(ValueError):
            parse_settings({"database": {"url": "sqlite://"}, "logging": {"level": "LOUD"}})


class TestLoadYaml:

    def test_load_file(self, tmp_path):
        path = write(tmp_path, """
            database:
              url: sqlite:///marketplace.db
        """)
        assert load_yaml_file(path) == {"database": {"url": "sqlite:///marketplace.db"}}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = write(tmp_path, "database: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = write(tmp_path, "- just\n- a list\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)


class TestEnvOverrides:

    def test_overrides_applied(self):
        base = MarketplaceSettings(database_url="sqlite://")
        env = {"MARKETPLACE_DATABASE_URL": "postgresql://x/y", "MARKETPLACE_LOG_LEVEL": "warning"}

        settings = apply_env_overrides(base, env)

        assert settings.database_url == "postgresql://x/y"
        assert settings.log_level == "WARNING"

    def test_no_overrides_returns_same(self):
        base = MarketplaceSettings(database_url="sqlite://")
        assert apply_env_overrides(base, {}) is base


class TestGetSettings:

    def test_packaged_defaults(self, monkeypatch):
        monkeypatch.delenv("MARKETPLACE_CONFIG", raising=False)
        monkeypatch.delenv("MARKETPLACE_DATABASE_URL", raising=False)
        monkeypatch.delenv("MARKETPLACE_LOG_LEVEL", raising=False)

        settings = get_settings()

        assert DEFAULT_CONFIG_PATH.exists()
        assert settings.database_url.startswith("postgresql://")
        assert settings.pool_size == 5

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        path = write(tmp_path, """
            database:
              url: sqlite://
            logging:
              level: ERROR
        """)
        monkeypatch.setenv("MARKETPLACE_CONFIG", str(path))
        monkeypatch.delenv("MARKETPLACE_DATABASE_URL", raising=False)
        monkeypatch.delenv("MARKETPLACE_LOG_LEVEL", raising=False)

        settings = get_settings()

        assert settings.database_url == "sqlite://"
        assert settings.log_level == "ERROR"

    def test_env_url_wins_over_file(self, tmp_path, monkeypatch):
        path = write(tmp_path, """
            database:
              url: sqlite://
        """)
        monkeypatch.setenv("MARKETPLACE_DATABASE_URL", "sqlite:///override.db")

        assert get_settings(path).database_url == "sqlite:///override.db"


class TestEngineFromSettings:

    def test_sqlite_engine_from_settings(self):
        from marketplace_kernel.db.engine import create_tables, init_engine_from_settings, reset_engine

        try:
            engine = init_engine_from_settings(MarketplaceSettings(database_url="sqlite://"))
            create_tables(engine)
            assert engine.dialect.name == "sqlite"
        finally:
            reset_engine()
