"""Config loading, profile overlay and secret lookup."""

from automarkets.config import get_settings, load_config


def _write_config(tmp_path):
    (tmp_path / "default.toml").write_text(
        """
[storage]
db_path = "data/main.duckdb"

[automation]
creation_interval_min = 360
test_mode = false

[api]
cron_secret_env = "MY_CRON"
"""
    )
    (tmp_path / "dev.toml").write_text(
        """
[automation]
test_mode = true
"""
    )


def test_profile_overlay_deep_merges(tmp_path):
    _write_config(tmp_path)
    raw = load_config("dev", tmp_path)
    assert raw["automation"] == {"creation_interval_min": 360, "test_mode": True}
    assert raw["storage"]["db_path"] == "data/main.duckdb"


def test_settings_defaults_and_overrides(tmp_path):
    _write_config(tmp_path)
    settings = get_settings(None, tmp_path)
    assert settings.test_mode is False
    assert settings.creation_interval_min == 360
    assert settings.resolution_interval_min == 1
    assert settings.resolution_window_sec == 60
    assert settings.image_max_age_days == 7
    assert settings.chart_interval == "5m"
    assert settings.webhook_url is None
    assert get_settings("dev", tmp_path).test_mode is True


def test_missing_config_dir_gives_defaults(tmp_path):
    settings = get_settings(None, tmp_path / "missing")
    assert settings.db_path == "data/automarkets.duckdb"
    assert settings.requests_per_second == 1.0


def test_secrets_come_from_environment(tmp_path, monkeypatch):
    _write_config(tmp_path)
    settings = get_settings(None, tmp_path)
    monkeypatch.delenv("MY_CRON", raising=False)
    assert settings.cron_secret is None
    monkeypatch.setenv("MY_CRON", "abc")
    assert settings.cron_secret == "abc"


def test_profile_and_config_dir_from_environment(tmp_path, monkeypatch):
    _write_config(tmp_path)
    monkeypatch.setenv("AUTOMARKETS_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("AUTOMARKETS_PROFILE", "dev")
    settings = get_settings()
    assert settings.test_mode is True
    assert settings.db_path == "data/main.duckdb"
