import pytest

import config
from config import Provider, Settings


def test_defaults_select_gemini():
    settings = Settings.from_env({})
    assert settings.provider is Provider.GEMINI
    assert settings.model == config.DEFAULT_MODEL
    assert settings.openrouter_base_url == config.OPENROUTER_BASE_URL
    assert not settings.legacy_provider_switch


def test_canonical_provider_variable():
    settings = Settings.from_env({"NANO_PROVIDER": "OpenRouter", "OPENROUTER_API_KEY": " k "})
    assert settings.provider is Provider.OPENROUTER
    assert settings.openrouter_api_key == "k"
    assert not settings.legacy_provider_switch


@pytest.mark.parametrize("value", ["1", "true", "TRUE"])
def test_legacy_switch_still_selects_openrouter(value):
    settings = Settings.from_env({"USE_OPENROUTER": value})
    assert settings.provider is Provider.OPENROUTER
    assert settings.legacy_provider_switch


def test_canonical_variable_beats_legacy_switch():
    settings = Settings.from_env({"NANO_PROVIDER": "gemini", "USE_OPENROUTER": "1"})
    assert settings.provider is Provider.GEMINI
    assert not settings.legacy_provider_switch


def test_unknown_provider_rejected():
    with pytest.raises(ValueError, match="unknown provider"):
        Settings.from_env({"NANO_PROVIDER": "midjourney"})


def test_bad_timeout_rejected():
    with pytest.raises(ValueError, match="NANO_HTTP_TIMEOUT"):
        Settings.from_env({"NANO_HTTP_TIMEOUT": "soon"})


def test_debug_flags():
    assert Settings.from_env({"NANO_DEBUG": "1"}).debug
    assert Settings.from_env({"OPENROUTER_DEBUG": "1"}).debug
    assert not Settings.from_env({}).debug


def test_openrouter_overrides():
    settings = Settings.from_env({
        "OPENROUTER_MODEL": "acme/painter",
        "OPENROUTER_BASE_URL": "http://proxy/v1",
        "OPENROUTER_SITE": "https://example.com",
        "OPENROUTER_TITLE": "my-app",
        "NANO_BG_FUZZ": "10%",
    })
    assert settings.openrouter_model == "acme/painter"
    assert settings.openrouter_base_url == "http://proxy/v1"
    assert settings.openrouter_site == "https://example.com"
    assert settings.openrouter_title == "my-app"
    assert settings.bg_fuzz == "10%"


def test_explicit_config_file_overrides_environment(tmp_path, monkeypatch):
    env_file = tmp_path / "nano.env"
    env_file.write_text("NANO_MODEL=from-file\n", encoding="utf-8")
    monkeypatch.setenv("NANO_MODEL", "from-env")
    config.load_config_file(env_file)
    assert Settings.from_env().model == "from-file"


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        config.load_config_file(tmp_path / "missing.env")
