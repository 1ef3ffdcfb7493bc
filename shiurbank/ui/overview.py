"""Shared helpers for building overview snapshots of the audio catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..config import PlayerConfig
from ..playback.controller import PlayableItem, PlaybackController, PlaybackSession
from ..playback.formats import FormatProbe
from ..playback.media import SimulatedMediaElement
from ..playback.scheduler import ManualScheduler
from ..services.catalog import AudioCatalog, AudioFileRecord


UNSORTED_FOLDER = "(top level)"


@dataclass
class RecordingOverview:
    record: AudioFileRecord
    item: PlayableItem


@dataclass
class FolderOverview:
    name: str
    recordings: List[RecordingOverview]


@dataclass
class OverviewSnapshot:
    folders: List[FolderOverview]
    recording_count: int
    playable_count: int
    unsupported_count: int
    total_duration_seconds: float


def build_offline_controller(
    config: PlayerConfig,
    records: List[AudioFileRecord],
    *,
    format_probe: Optional[FormatProbe] = None,
) -> PlaybackController:
    """Return a controller on a virtual clock, primed with *records*' durations."""

    durations = {record.locator: record.duration_seconds for record in records}
    scheduler = ManualScheduler()
    media = SimulatedMediaElement(
        scheduler,
        lambda src: durations.get(src),
    )
    session = PlaybackSession(media)
    return PlaybackController.from_config(
        config,
        session,
        scheduler,
        format_probe=format_probe,
        stream_url=lambda locator: locator,
    )


def collect_overview(
    catalog: AudioCatalog,
    config: PlayerConfig,
    *,
    format_probe: Optional[FormatProbe] = None,
) -> OverviewSnapshot:
    """Aggregate the catalog into a snapshot, grouped by top-level folder."""

    records = catalog.list_records()
    controller = build_offline_controller(config, records, format_probe=format_probe)
    items = controller.register_items(
        PlayableItem.from_locator(record.locator) for record in records
    )

    grouped: Dict[str, List[RecordingOverview]] = {}
    for record, item in zip(records, items):
        folder = record.locator.split("/", 1)[0] if "/" in record.locator else UNSORTED_FOLDER
        grouped.setdefault(folder, []).append(RecordingOverview(record=record, item=item))
    controller.close()

    playable = sum(1 for item in items if item.view.interactive)
    return OverviewSnapshot(
        folders=[FolderOverview(name=name, recordings=entries) for name, entries in grouped.items()],
        recording_count=len(records),
        playable_count=playable,
        unsupported_count=len(items) - playable,
        total_duration_seconds=sum(record.duration_seconds or 0.0 for record in records),
    )


__all__ = [
    "FolderOverview",
    "OverviewSnapshot",
    "RecordingOverview",
    "build_offline_controller",
    "collect_overview",
]
