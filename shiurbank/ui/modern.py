"""A Rich-powered console front-end for browsing the audio catalog."""

from __future__ import annotations

from typing import Iterable, Optional

from rich import box
from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ..config import PlayerConfig
from ..playback.controller import format_time
from ..services.catalog import AudioCatalog
from .overview import FolderOverview, OverviewSnapshot, RecordingOverview, collect_overview


class ModernUI:
    """Render a modernised overview using Rich widgets."""

    def __init__(
        self,
        catalog: AudioCatalog,
        player_config: PlayerConfig,
        *,
        console: Optional[Console] = None,
    ) -> None:
        self._catalog = catalog
        self._player_config = player_config
        self._console = console or Console()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(self) -> None:
        snapshot = collect_overview(self._catalog, self._player_config)
        console = self._console

        console.clear()
        console.rule("[bold magenta]ShiurBank Overview")

        if snapshot.recording_count == 0:
            console.print(
                Panel(
                    "No recordings found.\n"
                    f"Copy audio files into [bold]{self._catalog.audio_root}[/bold] to get started.",
                    border_style="yellow",
                    box=box.ROUNDED,
                )
            )
            return

        tree_panel = Panel(
            self._build_tree(snapshot.folders),
            title="Recordings",
            border_style="cyan",
            box=box.ROUNDED,
        )
        stats_panel = self._build_stats_panel(snapshot)

        console.print(Columns([tree_panel, stats_panel], expand=True, equal=True))
        console.print()
        console.print(
            Text(
                "Tip: pass --style console for the plain layout.",
                style="dim",
            ),
            justify="center",
        )

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------
    def _build_tree(self, folders: Iterable[FolderOverview]) -> Tree:
        tree = Tree("[bold cyan]Folders", guide_style="cyan")
        for folder in folders:
            folder_node = tree.add(Text(folder.name, style="bold"))
            for recording in folder.recordings:
                folder_node.add(self._build_recording_label(recording))
        return tree

    @staticmethod
    def _build_recording_label(overview: RecordingOverview) -> Text:
        item = overview.item
        style = "green" if item.view.interactive else "dim"
        label = Text(f"{item.view.glyph} ", style=style)
        label.append(item.title, style="white" if item.view.interactive else "dim")
        if overview.record.duration_seconds is not None:
            label.append(f"  {format_time(overview.record.duration_seconds)}", style="cyan")
        if item.view.label:
            label.append("\n")
            label.append(f"⚠ {item.view.label}", style="yellow")
        return label

    def _build_stats_panel(self, snapshot: OverviewSnapshot) -> Panel:
        metrics = Table.grid(expand=True, padding=(0, 1))
        metrics.add_column(style="dim")
        metrics.add_column(justify="right", style="bold")
        metrics.add_row("Folders", str(len(snapshot.folders)))
        metrics.add_row("Recordings", str(snapshot.recording_count))

        playback_table = Table.grid(expand=True, padding=(0, 1))
        playback_table.add_column(style="dim")
        playback_table.add_column(justify="right", style="bold")
        playback_table.add_row("Playable", str(snapshot.playable_count))
        playback_table.add_row("Unsupported", str(snapshot.unsupported_count))
        playback_table.add_row("Known duration", format_time(snapshot.total_duration_seconds))

        body = Group(metrics, Rule(style="magenta"), playback_table)
        return Panel(body, title="At a glance", border_style="magenta", box=box.ROUNDED)


__all__ = ["ModernUI"]
