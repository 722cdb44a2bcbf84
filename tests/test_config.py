from __future__ import annotations

import pytest

from convivir.config import CLEANLINESS_ORDER, Settings, get_settings
from convivir.database import get_supabase_client
from convivir.database.supabase_client import _credentials


def test_defaults(monkeypatch):
    for name in ("RECOMMENDATION_LIMIT", "PROFILES_TABLE", "SUBSCRIPTION_POLL_INTERVAL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.recommendation_limit == 5
    assert settings.profiles_table == "roommate_profiles"
    assert settings.subscription_poll_interval == 5.0
    assert settings.repository_retry_attempts == 3


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RECOMMENDATION_LIMIT", "8")
    monkeypatch.setenv("profiles_table", "perfiles")

    settings = Settings(_env_file=None)

    assert settings.recommendation_limit == 8
    assert settings.profiles_table == "perfiles"


def test_invalid_limit_is_rejected(monkeypatch):
    monkeypatch.setenv("RECOMMENDATION_LIMIT", "0")
    with pytest.raises(ValueError):
        Settings(_env_file=None)


def test_cleanliness_order_is_strictest_first():
    assert CLEANLINESS_ORDER == ["very-clean", "clean", "moderate", "relaxed"]


def test_supabase_client_requires_credentials(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)
    monkeypatch.setattr(
        "convivir.database.supabase_client.get_settings",
        lambda: Settings(_env_file=None),
    )
    get_supabase_client.cache_clear()

    with pytest.raises(ValueError, match="SUPABASE_URL"):
        get_supabase_client()


def test_supabase_service_key_takes_priority():
    settings = Settings(
        _env_file=None,
        supabase_url="https://demo.supabase.co",
        supabase_key="anon",
        supabase_service_key="service",
    )

    assert _credentials(settings) == ("https://demo.supabase.co", "service")
