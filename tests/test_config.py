import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from relay.config import RelaySettings, get_settings
from relay.constants import DEFAULT_MODEL, GEMINI_API_BASE


@pytest.fixture
def no_env_file(tmp_path):
    return str(tmp_path / "absent.env")


def load(env, env_file):
    with patch.dict(os.environ, env, clear=True):
        return RelaySettings(_env_file=env_file)


def test_defaults_without_environment(no_env_file):
    settings = load({}, no_env_file)

    assert settings.api_key is None
    assert settings.api_base == GEMINI_API_BASE
    assert settings.default_model == DEFAULT_MODEL
    assert settings.max_attempts == 5
    assert settings.timeout_s == 30.0
    assert settings.port == 3000
    assert settings.log_level == "INFO"


def test_values_from_environment(no_env_file):
    env = {
        "GEMINI_API_KEY": " secret ",
        "GEMINI_MODEL": "gemini-pro",
        "GEMINI_API_BASE": "http://localhost:9000/models",
        "RELAY_MAX_ATTEMPTS": "3",
        "RELAY_TIMEOUT_SECONDS": "12.5",
        "PORT": "8080",
        "LOG_LEVEL": "debug",
    }
    settings = load(env, no_env_file)

    assert settings.api_key == "secret"
    assert settings.default_model == "gemini-pro"
    assert settings.api_base == "http://localhost:9000/models/"
    assert settings.max_attempts == 3
    assert settings.timeout_s == 12.5
    assert settings.port == 8080
    assert settings.log_level == "DEBUG"


def test_blank_key_counts_as_missing(no_env_file):
    assert load({"GEMINI_API_KEY": "   "}, no_env_file).api_key is None


def test_blank_model_falls_back_to_default(no_env_file):
    assert load({"GEMINI_MODEL": " "}, no_env_file).default_model == DEFAULT_MODEL


@pytest.mark.parametrize(
    "name, value",
    [
        ("RELAY_MAX_ATTEMPTS", "0"),
        ("RELAY_MAX_ATTEMPTS", "five"),
        ("RELAY_TIMEOUT_SECONDS", "-3"),
        ("RELAY_TIMEOUT_SECONDS", "0"),
        ("PORT", "eighty"),
        ("PORT", "70000"),
        ("LOG_LEVEL", "LOUD"),
    ],
)
def test_malformed_values_are_rejected_by_name(no_env_file, name, value):
    with pytest.raises(ValidationError, match=name):
        load({name: value}, no_env_file)


def test_settings_are_immutable(no_env_file):
    settings = load({}, no_env_file)
    with pytest.raises(ValidationError):
        settings.max_attempts = 2


def test_env_file_fills_gaps_but_environment_wins(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_API_KEY=from-file\nGEMINI_MODEL=file-model\nUNRELATED=1\n")

    settings = load({"GEMINI_MODEL": "env-model"}, str(env_file))

    assert settings.api_key == "from-file"
    assert settings.default_model == "env-model"


def test_get_settings_is_cached(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "first")
    first = get_settings()
    monkeypatch.setenv("GEMINI_API_KEY", "second")

    assert get_settings() is first
    assert first.api_key == "first"
