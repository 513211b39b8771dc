from __future__ import annotations

import pytest

from openhaus import config


@pytest.fixture()
def isolated_env(monkeypatch, tmp_path):
    for key in list(config.DEFAULTS) + ["data_dir", "db", "config"]:
        monkeypatch.delenv(f"OPENHAUS_{key.upper()}", raising=False)
    for legacy in config.LEGACY_ENV_KEYS.values():
        monkeypatch.delenv(legacy, raising=False)
    monkeypatch.setenv("OPENHAUS_BASE_DIR", str(tmp_path))
    monkeypatch.setattr(config, "settings", config.settings)
    return tmp_path


def test_defaults_and_paths(isolated_env):
    settings = config.load_settings()
    assert settings.toast_seconds == 3.0
    assert settings.sign_in_url == "/sign-in"
    assert settings.database_path == isolated_env / "data" / "openhaus.db"
    assert settings.data_dir.is_dir()
    assert settings.jwt_algorithms == ["RS256"]


def test_env_beats_toml(isolated_env, monkeypatch):
    (isolated_env / "openhaus.toml").write_text(
        'toast_seconds = 5\napp_port = 9000\nsign_in_url = "/login"\n',
        encoding="utf-8",
    )
    monkeypatch.setenv("OPENHAUS_APP_PORT", "8100")

    settings = config.load_settings()

    assert settings.toast_seconds == 5.0
    assert settings.app_port == 8100
    assert settings.sign_in_url == "/login"


def test_provider_env_names_are_honoured(isolated_env, monkeypatch):
    monkeypatch.setenv("CLERK_WEBHOOK_SECRET", "whsec_legacy")
    assert config.load_settings().clerk_webhook_secret == "whsec_legacy"
    monkeypatch.setenv("OPENHAUS_CLERK_WEBHOOK_SECRET", "whsec_new")
    assert config.load_settings().clerk_webhook_secret == "whsec_new"


def test_settings_as_dict_redacts_secrets(isolated_env, monkeypatch):
    monkeypatch.setenv("OPENHAUS_CLERK_WEBHOOK_SECRET", "whsec_hidden")
    data = config.settings_as_dict(config.load_settings())
    assert data["clerk_webhook_secret"] == "********"
    assert data["clerk_jwt_key"] == ""


def test_update_config_file_round_trips(isolated_env):
    path = isolated_env / "custom.toml"
    updated = config.update_config_file(
        {"toast_seconds": "4.5", "app_host": "127.0.0.1"}, path=path
    )
    assert updated.toast_seconds == 4.5
    assert updated.app_host == "127.0.0.1"
    assert 'app_host = "127.0.0.1"' in path.read_text(encoding="utf-8")


def test_update_config_file_rejects_unknown_keys(isolated_env):
    with pytest.raises(KeyError):
        config.update_config_file({"nope": 1}, path=isolated_env / "x.toml")
