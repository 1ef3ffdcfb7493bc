from __future__ import annotations

import json

import pytest

from shiurbank.services.settings import PlayerSettings, SettingsStore


def test_load_returns_defaults_when_missing(temp_config) -> None:
    store = SettingsStore(temp_config)

    settings = store.load()

    assert settings == PlayerSettings(playback_rate=1.0, skip_seconds=15.0)
    assert not store.path.exists()


def test_save_and_reload(temp_config) -> None:
    store = SettingsStore(temp_config)

    store.save(PlayerSettings(playback_rate=1.5, skip_seconds=30.0))

    assert json.loads(store.path.read_text(encoding="utf-8")) == {
        "playback_rate": 1.5,
        "skip_seconds": 30.0,
    }
    assert store.load() == PlayerSettings(playback_rate=1.5, skip_seconds=30.0)


def test_invalid_rate_falls_back_to_default(temp_config) -> None:
    store = SettingsStore(temp_config)
    store.path.write_text(json.dumps({"playback_rate": 3.0, "skip_seconds": 10}), encoding="utf-8")

    settings = store.load()

    assert settings.playback_rate == 1.0
    assert settings.skip_seconds == 10


def test_corrupt_file_is_ignored(temp_config) -> None:
    store = SettingsStore(temp_config)
    store.path.write_text("{not json", encoding="utf-8")

    assert store.load() == PlayerSettings()


def test_unknown_keys_are_ignored(temp_config) -> None:
    store = SettingsStore(temp_config)
    store.path.write_text(json.dumps({"volume": 0.5, "playback_rate": 0.75}), encoding="utf-8")

    settings = store.load()

    assert settings.playback_rate == 0.75
    assert not hasattr(settings, "volume")


@pytest.mark.parametrize("payload", [[1, 2], "fast", 3, None])
def test_non_object_file_falls_back_to_defaults(temp_config, payload) -> None:
    store = SettingsStore(temp_config)
    store.path.write_text(json.dumps(payload), encoding="utf-8")

    assert store.load() == PlayerSettings()


@pytest.mark.parametrize(
    ("stored", "expected"),
    [("30", 30.0), (45, 45.0), ("soon", 15.0), ([5], 15.0), (True, 15.0), (-5, 15.0), (900, 15.0)],
)
def test_stored_skip_interval_is_validated(temp_config, stored, expected) -> None:
    store = SettingsStore(temp_config)
    store.path.write_text(json.dumps({"skip_seconds": stored}), encoding="utf-8")

    settings = store.load()

    assert settings.skip_seconds == expected
    assert isinstance(settings.skip_seconds, float)
