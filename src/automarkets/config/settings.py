"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

# Config search order: explicit arg, $AUTOMARKETS_CONFIG_DIR, ./config, project root
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"
CONFIG_DIR_ENV = "AUTOMARKETS_CONFIG_DIR"
PROFILE_ENV = "AUTOMARKETS_PROFILE"


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return Path(config_dir)
    env_dir = os.environ.get(CONFIG_DIR_ENV)
    if env_dir:
        return Path(env_dir)
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay ($AUTOMARKETS_PROFILE if unset)."""
    directory = _find_config_dir(config_dir)
    profile = profile or os.environ.get(PROFILE_ENV)
    default_path = directory / "default.toml"
    if not default_path.exists():
        return {}
    base = _load_toml(default_path)
    if profile:
        profile_path = directory / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        storage: dict[str, Any] | None = None,
        provider: dict[str, Any] | None = None,
        automation: dict[str, Any] | None = None,
        notifications: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.storage = storage or {}
        self.provider = provider or {}
        self.automation = automation or {}
        self.notifications = notifications or {}
        self.api = api or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            storage=raw.get("storage"),
            provider=raw.get("provider"),
            automation=raw.get("automation"),
            notifications=raw.get("notifications"),
            api=raw.get("api"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", "data/automarkets.duckdb")

    @property
    def uploads_dir(self) -> str:
        return self.storage.get("uploads_dir", "data/uploads")

    @property
    def provider_base_url(self) -> str:
        return self.provider.get("base_url", "https://data.solanatracker.io")

    @property
    def provider_api_key(self) -> str | None:
        """API key read from the environment variable named in config."""
        return os.environ.get(self.provider.get("api_key_env", "SOLANA_TRACKER_KEY"))

    @property
    def provider_timeout_sec(self) -> float:
        return float(self.provider.get("timeout_sec", 30.0))

    @property
    def requests_per_second(self) -> float:
        return float(self.provider.get("requests_per_second", 1.0))

    @property
    def chart_interval(self) -> str:
        return self.provider.get("chart_interval", "5m")

    @property
    def chart_limit(self) -> int:
        return int(self.provider.get("chart_limit", 1000))

    @property
    def creation_interval_min(self) -> int:
        return int(self.automation.get("creation_interval_min", 360))

    @property
    def resolution_interval_min(self) -> int:
        return int(self.automation.get("resolution_interval_min", 1))

    @property
    def resolution_window_sec(self) -> int:
        return int(self.automation.get("resolution_window_sec", 60))

    @property
    def test_mode(self) -> bool:
        return bool(self.automation.get("test_mode", False))

    @property
    def image_max_age_days(self) -> int:
        return int(self.automation.get("image_max_age_days", 7))

    @property
    def webhook_url(self) -> str | None:
        return self.notifications.get("webhook_url") or None

    @property
    def cron_secret(self) -> str | None:
        """Shared secret for job trigger endpoints, read from the environment."""
        return os.environ.get(self.api.get("cron_secret_env", "CRON_SECRET")) or None

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
