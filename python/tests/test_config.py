"""Tests for application configuration."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from galera.config import Environment, Settings, clear_settings_cache, get_settings


def _make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {
        "DATABASE_URL": "sqlite://",
        "GALERA_ENV": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestSettingsDefaults:
    def test_token_lifetimes(self):
        s = _make_settings(REFRESH_TOKEN_TTL_S=30 * 24 * 3600, ACCESS_TOKEN_TTL_S=900)
        assert s.refresh_token_ttl == timedelta(days=30)
        assert s.access_token_ttl == timedelta(minutes=15)

    def test_share_link_defaults(self):
        s = _make_settings(SHARE_LINK_SLUG_LENGTH=21, MAX_SLUG_RETRIES=5)
        assert s.share_link_slug_length == 21
        assert s.max_slug_retries == 5

    def test_env_parsed_as_enum(self):
        s = _make_settings(GALERA_ENV="local")
        assert s.galera_env == Environment.LOCAL


class TestSettingsValidation:
    def test_access_ttl_must_be_shorter_than_refresh_ttl(self):
        with pytest.raises(ValidationError, match="ACCESS_TOKEN_TTL_S must be smaller"):
            _make_settings(REFRESH_TOKEN_TTL_S=3600, ACCESS_TOKEN_TTL_S=3600)

    def test_bcrypt_cost_below_minimum_rejected(self):
        with pytest.raises(ValidationError):
            _make_settings(PASSWORD_HASH_COST=3)

    def test_bcrypt_cost_above_maximum_rejected(self):
        with pytest.raises(ValidationError):
            _make_settings(PASSWORD_HASH_COST=32)

    def test_zero_slug_retries_rejected(self):
        with pytest.raises(ValidationError):
            _make_settings(MAX_SLUG_RETRIES=0)

    def test_short_slug_length_rejected(self):
        with pytest.raises(ValidationError):
            _make_settings(SHARE_LINK_SLUG_LENGTH=4)

    @pytest.mark.parametrize("env", ["staging", "prod"])
    def test_sqlite_rejected_outside_local_and_test(self, env):
        with pytest.raises(ValidationError, match="DATABASE_URL must point at a server database"):
            _make_settings(GALERA_ENV=env, DATABASE_URL="sqlite:///galera.db")

    def test_server_database_accepted_in_prod(self):
        s = _make_settings(GALERA_ENV="prod", DATABASE_URL="postgresql://db/galera")
        assert s.galera_env == Environment.PROD


class TestSettingsCache:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_clear_settings_cache_reloads_environment(self, monkeypatch):
        monkeypatch.setenv("MAX_FOLDER_DEPTH", "7")
        clear_settings_cache()
        assert get_settings().max_folder_depth == 7
