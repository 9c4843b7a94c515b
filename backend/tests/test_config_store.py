"""Tests for ConfigStore layering."""
import json

from eats_notify.config_store import ConfigStore, load_file_layer
from eats_notify.settings import Settings


def test_defaults_without_file(tmp_path):
    store = ConfigStore(Settings, str(tmp_path / "missing.yaml"))
    settings = store.get_settings()
    assert settings.notification_fetch_limit == 50
    assert settings.vapid_public_key_setting == "vapid_public_key"
    assert settings.push_vibrate == [200, 100, 200]


def test_yaml_file_is_master_over_env(tmp_path, monkeypatch):
    monkeypatch.setenv("EATS_NOTIFY_NOTIFICATION_RETENTION_DAYS", "10")
    path = tmp_path / "config.yaml"
    path.write_text("notification_retention_days: 7\nchange_feed_backend: redis\n")

    settings = ConfigStore(Settings, str(path)).get_settings()

    assert settings.notification_retention_days == 7
    assert settings.change_feed_backend == "redis"


def test_env_applies_without_file(tmp_path, monkeypatch):
    monkeypatch.setenv("EATS_NOTIFY_STORE_RETRY_ATTEMPTS", "5")
    settings = ConfigStore(Settings, str(tmp_path / "none.yaml")).get_settings()
    assert settings.store_retry_attempts == 5


def test_overrides_and_invalid_update(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"notification_fetch_limit": 20}))
    store = ConfigStore(Settings, str(path))

    store.update({"notification_fetch_limit": 30})
    assert store.get_settings().notification_fetch_limit == 30

    store.update({"change_feed_backend": "carrier-pigeon"})
    assert store.get_settings().change_feed_backend == "memory"

    store.clear_overrides()
    assert store.get_settings().notification_fetch_limit == 20


def test_reload_picks_up_file_changes(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("cleanup_interval_seconds: 60\n")
    store = ConfigStore(Settings, str(path))
    assert store.get_settings().cleanup_interval_seconds == 60

    path.write_text("cleanup_interval_seconds: 120\n")
    store.reload_from_file()

    assert store.get_settings().cleanup_interval_seconds == 120


def test_invalid_yaml_is_ignored(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("notification_fetch_limit: [unclosed\n")
    assert ConfigStore(Settings, str(path)).get_settings().notification_fetch_limit == 50


def test_file_layer_ignores_non_mapping_and_unknown_suffix(tmp_path):
    listing = tmp_path / "config.yaml"
    listing.write_text("- 1\n- 2\n")
    toml = tmp_path / "config.toml"
    toml.write_text("notification_fetch_limit = 5\n")

    assert load_file_layer(listing) == {}
    assert load_file_layer(toml) == {}
    assert load_file_layer(None) == {}
