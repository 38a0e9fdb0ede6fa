import pydantic
import pytest

from krishimitr.core.config import Settings
from krishimitr.core.logging_config import get_log_level


def test_defaults():
    config = Settings(_env_file=None)

    assert config.demo_otp_code == "123456"
    assert config.payment_processing_delay_seconds == 3.0
    assert config.payment_success_delay_seconds == 2.0
    assert config.min_password_length == 6
    assert config.otp_expiry_seconds == 300


def test_storage_backend_is_normalised():
    assert Settings(_env_file=None, storage_backend=" MEMORY ").storage_backend == "memory"


def test_unknown_storage_backend():
    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None, storage_backend="sqlite")


@pytest.mark.parametrize("delay", [-1, 0])
def test_non_positive_delay_is_rejected(delay):
    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None, payment_processing_delay_seconds=delay)
    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None, payment_success_delay_seconds=delay)


def test_zero_password_length_is_rejected():
    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None, min_password_length=0)


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "redis")
    monkeypatch.setenv("PAYMENT_SUCCESS_DELAY_SECONDS", "0.5")

    config = Settings(_env_file=None)

    assert config.storage_backend == "redis"
    assert config.payment_success_delay_seconds == 0.5


def test_production_checkout_needs_secret_in_environment(monkeypatch):
    monkeypatch.delenv("CHECKOUT_KEY_SECRET", raising=False)

    with pytest.raises(pydantic.ValidationError, match="CHECKOUT_KEY_SECRET"):
        Settings(_env_file=None, environment="production", checkout_key_id="rzp_live_key")

    monkeypatch.setenv("CHECKOUT_KEY_SECRET", "live-secret")
    config = Settings(_env_file=None, environment="production", checkout_key_id="rzp_live_key")
    assert config.checkout_key_secret == "live-secret"


@pytest.mark.parametrize(
    "environment, level, expected",
    [
        ("production", "", "INFO"),
        ("development", "", "DEBUG"),
        ("test", "", "WARNING"),
        ("test", "error", "ERROR"),
        ("staging", "verbose", "INFO"),
    ],
)
def test_log_level(monkeypatch, environment, level, expected):
    monkeypatch.setenv("ENVIRONMENT", environment)
    monkeypatch.setenv("LOG_LEVEL", level)

    assert get_log_level() == expected
