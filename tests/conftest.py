from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shiurbank.bootstrap import Bootstrapper
from shiurbank.config import AppConfig
from shiurbank.playback.controller import PlayableItem, PlaybackController, PlaybackSession
from shiurbank.playback.formats import StaticFormatProbe
from shiurbank.playback.media import SimulatedMediaElement
from shiurbank.playback.scheduler import ManualScheduler


@pytest.fixture()
def temp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_file = config_dir / "default.json"
    config_file.write_text(
        """
        {
            \"storage_root\": \"storage\",\n
            \"audio_root\": \"storage/audio\"\n
        }
        """,
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "audio_root": "storage/audio",
        },
        base_path=tmp_path,
    )

    Bootstrapper(config).initialize()
    return config


DURATIONS = {
    "series-1/bereishis.mp3": 600.0,
    "series-1/noach.mp3": 420.0,
    "series-2/lech-lecha.ogg": 30.0,
    "legacy/vayeira.wma": 300.0,
}


class PlayerHarness:
    """Controller wired to a virtual clock and a simulated media element."""

    def __init__(self, *, max_ready_polls=300, durations=None) -> None:
        self.durations = dict(DURATIONS if durations is None else durations)
        self.scheduler = ManualScheduler()
        self.media = SimulatedMediaElement(
            self.scheduler,
            lambda src: self.durations.get(src),
        )
        self.session = PlaybackSession(self.media)
        self.controller = PlaybackController(
            self.session,
            self.scheduler,
            format_probe=StaticFormatProbe(["audio/mpeg", "audio/ogg"]),
            stream_url=lambda locator: locator,
            max_ready_polls=max_ready_polls,
        )
        self.items = self.controller.register_items(
            PlayableItem.from_locator(locator) for locator in self.durations
        )

    def item(self, locator: str) -> PlayableItem:
        found = self.controller.get_item(locator)
        assert found is not None
        return found

    def start(self, locator: str) -> None:
        assert self.controller.play(locator)
        self.scheduler.advance(0.2)

    def playing_items(self):
        return [item.identifier for item in self.items if item.view.playing]


@pytest.fixture()
def harness() -> PlayerHarness:
    return PlayerHarness()


@pytest.fixture()
def make_harness():
    return PlayerHarness
