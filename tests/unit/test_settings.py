import pytest
from pathlib import Path
from unittest.mock import patch

from pydantic import ValidationError as PydanticValidationError

from partner_discovery.config.settings import Settings, get_settings


def test_defaults_without_environment():
    with patch.dict("os.environ", {}, clear=True):
        settings = Settings(_env_file=None)
    assert settings.coupang_api_base_url == "https://api-gateway.coupang.com"
    assert settings.default_sub_id is None
    assert settings.deeplink_use_default_sub_id is False
    assert settings.request_timeout_seconds == 30
    assert settings.max_retries == 3
    assert settings.device_store_path == Path(".partner_discovery/device_identity.json")
    assert settings.api_port == 8000
    assert settings.is_configured is False


def test_real_settings_with_env():
    with patch.dict("os.environ", {
        "COUPANG_ACCESS_KEY": "ak",
        "COUPANG_SECRET_KEY": "sk",
        "COUPANG_DEFAULT_SUB_ID": "console",
        "DEEPLINK_USE_DEFAULT_SUB_ID": "true",
        "LOG_LEVEL": "DEBUG",
    }, clear=True):
        settings = Settings(_env_file=None)
    assert settings.is_configured is True
    assert settings.coupang_secret_key.get_secret_value() == "sk"
    assert settings.default_sub_id == "console"
    assert settings.deeplink_use_default_sub_id is True
    assert settings.log_level == "DEBUG"


def test_secrets_are_not_printed(settings):
    assert "test-secret-key" not in repr(settings)
    assert "test-secret-key" not in str(settings.coupang_secret_key)


def test_blank_sub_id_is_unset(settings_factory):
    assert settings_factory(COUPANG_DEFAULT_SUB_ID="   ").default_sub_id is None


def test_half_configured_credentials(settings_factory):
    assert settings_factory(COUPANG_SECRET_KEY="").is_configured is False


def test_max_retries_must_be_positive(settings_factory):
    with pytest.raises(PydanticValidationError):
        settings_factory(MAX_RETRIES=0)


def test_invalid_log_level_rejected(settings_factory):
    with pytest.raises(PydanticValidationError):
        settings_factory(LOG_LEVEL="VERBOSE")


def test_get_settings_is_cached():
    with patch.dict("os.environ", {}, clear=True):
        assert get_settings() is get_settings()
