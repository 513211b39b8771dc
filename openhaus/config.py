"""Global configuration for OpenHaus."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

DEFAULT_EVENT_IMAGE = (
    "https://images.unsplash.com/photo-1511795409834-ef04bbd61622"
    "?w=800&h=600&fit=crop"
)

DEFAULTS: dict[str, Any] = {
    "clerk_webhook_secret": "",
    "clerk_jwt_key": "",
    "clerk_jwt_algorithms": "RS256",
    "sign_in_url": "/sign-in",
    "default_event_image": DEFAULT_EVENT_IMAGE,
    "toast_seconds": 3.0,
    "catalog_path": "",
    "seed_users": 5,
    "seed_events_per_user": 2,
    "app_host": "0.0.0.0",
    "app_port": 8000,
}

TYPE_CASTERS: dict[str, Callable[[Any], Any]] = {
    "clerk_webhook_secret": str,
    "clerk_jwt_key": str,
    "clerk_jwt_algorithms": str,
    "sign_in_url": str,
    "default_event_image": str,
    "toast_seconds": float,
    "catalog_path": str,
    "seed_users": int,
    "seed_events_per_user": int,
    "app_host": str,
    "app_port": int,
}

# Keys that keep working under the names the identity provider documents.
LEGACY_ENV_KEYS: dict[str, str] = {
    "clerk_webhook_secret": "CLERK_WEBHOOK_SECRET",
    "clerk_jwt_key": "CLERK_JWT_KEY",
}

SECRET_KEYS = {"clerk_webhook_secret", "clerk_jwt_key"}


@dataclass(frozen=True)
class Settings:
    base_dir: Path
    data_dir: Path
    database_path: Path
    clerk_webhook_secret: str
    clerk_jwt_key: str
    clerk_jwt_algorithms: str
    sign_in_url: str
    default_event_image: str
    toast_seconds: float
    catalog_path: str
    seed_users: int
    seed_events_per_user: int
    app_host: str
    app_port: int
    config_path: Path

    @property
    def jwt_algorithms(self) -> list[str]:
        return [
            item.strip()
            for item in self.clerk_jwt_algorithms.split(",")
            if item.strip()
        ]


def _cast_value(key: str, value: Any) -> Any:
    if key not in TYPE_CASTERS:
        return value
    return TYPE_CASTERS[key](value)


def _load_toml_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        return tomllib.load(handle)


def _config_layered_value(key: str, *, toml_config: dict[str, Any]) -> Any:
    env_key = f"OPENHAUS_{key.upper()}"
    if env_key in os.environ:
        return _cast_value(key, os.environ[env_key])
    legacy_key = LEGACY_ENV_KEYS.get(key)
    if legacy_key and legacy_key in os.environ:
        return _cast_value(key, os.environ[legacy_key])
    if key in toml_config:
        return _cast_value(key, toml_config[key])
    return DEFAULTS[key]


def _resolve_paths(
    *,
    base_dir: Path,
    data_dir: str | Path | None,
    database_path: str | Path | None,
):
    resolved_base = Path(base_dir)
    resolved_data = Path(data_dir) if data_dir else resolved_base / "data"
    if not resolved_data.is_absolute():
        resolved_data = resolved_base / resolved_data
    resolved_db = Path(database_path) if database_path else resolved_data / "openhaus.db"
    if not resolved_db.is_absolute():
        resolved_db = resolved_base / resolved_db
    return resolved_base, resolved_data, resolved_db


def load_settings(config_override: Path | None = None) -> Settings:
    base_dir = Path(os.getenv("OPENHAUS_BASE_DIR", Path.cwd()))
    env_config = os.getenv("OPENHAUS_CONFIG")
    config_path = Path(config_override or env_config or base_dir / "openhaus.toml")
    toml_config = _load_toml_config(config_path)

    base_dir_value, data_dir_value, database_path_value = _resolve_paths(
        base_dir=base_dir,
        data_dir=os.getenv("OPENHAUS_DATA_DIR", toml_config.get("data_dir")),
        database_path=os.getenv("OPENHAUS_DB", toml_config.get("database_path")),
    )

    values = {
        key: _config_layered_value(key, toml_config=toml_config) for key in DEFAULTS
    }
    settings = Settings(
        base_dir=base_dir_value,
        data_dir=data_dir_value,
        database_path=database_path_value,
        config_path=config_path,
        **values,
    )
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings


def settings_as_dict(settings: Settings, *, redact: bool = True) -> dict[str, Any]:
    data: dict[str, Any] = {
        "base_dir": str(settings.base_dir),
        "data_dir": str(settings.data_dir),
        "database_path": str(settings.database_path),
    }
    for key in DEFAULTS:
        value = getattr(settings, key)
        if redact and key in SECRET_KEYS and value:
            value = "********"
        data[key] = value
    return data


def _toml_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def write_config_file(config: dict[str, Any], *, path: Path) -> None:
    lines = ["# OpenHaus configuration\n"]
    for key in sorted(config.keys()):
        lines.append(f"{key} = {_toml_literal(config[key])}\n")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(lines), encoding="utf-8")


def update_config_file(updates: dict[str, Any], *, path: Path | None = None) -> Settings:
    current_settings = settings if "settings" in globals() else load_settings()
    target_path = path or current_settings.config_path
    existing = _load_toml_config(target_path)
    merged = {**existing}
    for key, value in updates.items():
        if key not in DEFAULTS:
            raise KeyError(key)
        merged[key] = _cast_value(key, value)
    write_config_file(merged, path=target_path)
    new_settings = load_settings(target_path)
    globals()["settings"] = new_settings
    return new_settings


settings = load_settings()
