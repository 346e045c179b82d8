import pytest

from core import config as config_module


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    config_module.get_settings.cache_clear()
    yield
    config_module.get_settings.cache_clear()


def test_defaults_load(monkeypatch):
    for name in ("OPERATING_EXPENSE_RATIO", "DEMAND_JITTER_MIN", "DEMAND_JITTER_MAX", "FORECAST_DAYS"):
        monkeypatch.delenv(name, raising=False)

    settings = config_module.get_settings()
    assert settings.app_name == "ShelfSignal"
    assert settings.operating_expense_ratio == 0.15
    assert (settings.demand_jitter_min, settings.demand_jitter_max) == (0.8, 1.2)
    assert settings.transaction_log_limit == 10_000


def test_env_overrides_policy(monkeypatch):
    monkeypatch.setenv("OPERATING_EXPENSE_RATIO", "0.2")
    monkeypatch.setenv("FORECAST_DAYS", "14")

    settings = config_module.get_settings()
    assert settings.operating_expense_ratio == 0.2
    assert settings.forecast_days == 14


def test_expense_ratio_must_be_below_one(monkeypatch):
    monkeypatch.setenv("OPERATING_EXPENSE_RATIO", "1.0")

    with pytest.raises(ValueError, match="operating_expense_ratio"):
        config_module.get_settings()


def test_negative_expense_ratio_is_blocked(monkeypatch):
    monkeypatch.setenv("OPERATING_EXPENSE_RATIO", "-0.1")

    with pytest.raises(ValueError, match="operating_expense_ratio"):
        config_module.get_settings()


def test_inverted_jitter_band_is_blocked(monkeypatch):
    monkeypatch.setenv("DEMAND_JITTER_MIN", "1.3")
    monkeypatch.setenv("DEMAND_JITTER_MAX", "1.2")

    with pytest.raises(ValueError, match="demand jitter"):
        config_module.get_settings()


def test_negative_forecast_horizon_is_blocked(monkeypatch):
    monkeypatch.setenv("FORECAST_DAYS", "-1")

    with pytest.raises(ValueError, match="forecast_days"):
        config_module.get_settings()


def test_transaction_log_limit_must_be_positive(monkeypatch):
    monkeypatch.setenv("TRANSACTION_LOG_LIMIT", "0")

    with pytest.raises(ValueError, match="transaction_log_limit"):
        config_module.get_settings()
