"""Plain console overview for terminals without rich rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..config import PlayerConfig
from ..playback.controller import format_time
from ..services.catalog import AudioCatalog
from .overview import FolderOverview, RecordingOverview, collect_overview


@dataclass
class ConsoleSection:
    title: str
    entries: Iterable[str]


class ConsoleUI:
    """Minimal console UI that lists the catalog."""

    def __init__(self, catalog: AudioCatalog, player_config: PlayerConfig) -> None:
        self._catalog = catalog
        self._player_config = player_config

    def run(self) -> None:
        """Render the recordings, grouped by folder, to stdout."""

        print("ShiurBank – Console Overview")
        print("=" * 40)
        snapshot = collect_overview(self._catalog, self._player_config)
        if not snapshot.folders:
            print("(empty)")
            return
        for section in self._build_sections(snapshot.folders):
            print(section.title)
            print("-" * len(section.title))
            for entry in section.entries:
                print(entry)
            print()
        print(
            f"{snapshot.playable_count} playable, "
            f"{snapshot.unsupported_count} unsupported"
        )

    def _build_sections(self, folders: Iterable[FolderOverview]) -> Iterable[ConsoleSection]:
        for folder in folders:
            yield ConsoleSection(
                title=f"Folder: {folder.name}",
                entries=[self._format_recording(recording) for recording in folder.recordings],
            )

    @staticmethod
    def _format_recording(recording: RecordingOverview) -> str:
        item = recording.item
        line = f"  {item.view.glyph} {item.title}"
        if recording.record.duration_seconds is not None:
            line += f" ({format_time(recording.record.duration_seconds)})"
        if item.view.label:
            line += f" [{item.view.label}]"
        return line


__all__ = ["ConsoleUI"]
