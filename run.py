"""Entry-point for the ShiurBank player."""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from shiurbank.bootstrap import BootstrapError, initialize_app
from shiurbank.logging_utils import build_handlers, configure_logging
from shiurbank.services.catalog import AudioCatalog
from shiurbank.ui.console import ConsoleUI
from shiurbank.ui.modern import ModernUI
from shiurbank.web import create_app, normalize_root_path


LOGGER = logging.getLogger("shiurbank.cli")


cli = typer.Typer(add_completion=False, help="ShiurBank player commands")


def _prepare_logging(storage_root: Path) -> None:
    configure_logging(handlers=build_handlers(storage_root))


def _initialize():
    try:
        return initialize_app()
    except BootstrapError as error:
        typer.echo(f"Initialization failed: {error}")
        raise typer.Exit(code=1) from error


class UIStyle(str, Enum):
    MODERN = "modern"
    CONSOLE = "console"

style_option = typer.Option(
    UIStyle.MODERN,
    "--style",
    "-s",
    help="Select the overview presentation style.",
    show_default=True,
)


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
_BROWSER_DELAY_SECONDS = 1.0


@cli.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Launch the web server when no explicit command is provided."""

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve, host=DEFAULT_HOST, port=DEFAULT_PORT, root_path=None, open_browser=False)


def _listing_url(host: str, port: int, root_path: str) -> str:
    if not host or host in {"0.0.0.0", "::"}:
        host = "127.0.0.1"
    return f"http://{host}:{port}{root_path}/api/audio/list"


def _open_browser_later(url: str) -> None:
    time.sleep(_BROWSER_DELAY_SECONDS)
    try:
        webbrowser.open(url, new=2, autoraise=True)
    except webbrowser.Error as error:
        LOGGER.warning("Could not open browser at %s: %s", url, error)


@cli.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, help="Interface to bind the streaming API to"),
    port: int = typer.Option(DEFAULT_PORT, help="Port to bind the streaming API to"),
    root_path: Optional[str] = typer.Option(
        None,
        help="Path prefix when served behind a reverse proxy",
        envvar="SHIURBANK_ROOT_PATH",
    ),
    open_browser: bool = typer.Option(
        False,
        "--open-browser/--no-open-browser",
        help="Open the audio listing in a browser once the server is up",
    ),
) -> None:
    """Run the FastAPI-powered streaming API."""

    app_config = _initialize()
    _prepare_logging(app_config.storage_root)

    prefix = normalize_root_path(root_path)
    app = create_app(AudioCatalog(app_config), config=app_config, root_path=prefix)
    server = uvicorn.Server(
        uvicorn.Config(app, host=host, port=port, log_config=None, root_path=prefix)
    )
    app.state.server = server

    if open_browser:
        threading.Thread(
            target=lambda: _open_browser_later(_listing_url(host, port, prefix)),
            daemon=True,
        ).start()

    LOGGER.info("Serving audio from %s on %s:%s", app_config.audio_root, host, port)
    server.run()


@cli.command()
def overview(style: UIStyle = style_option) -> None:
    """Render an overview of the audio catalog using the chosen UI style."""

    config = _initialize()
    _prepare_logging(config.storage_root)

    catalog = AudioCatalog(config)
    if style is UIStyle.MODERN:
        ui = ModernUI(catalog, config.player)
    else:
        ui = ConsoleUI(catalog, config.player)
    ui.run()


if __name__ == "__main__":
    cli()
