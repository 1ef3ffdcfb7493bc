"""FastAPI application serving the audio catalog and media streams."""

from __future__ import annotations

import asyncio
import contextvars
import logging
import uuid
from dataclasses import asdict
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field, field_validator
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..config import AppConfig
from ..playback.controller import default_stream_url, validate_rate
from ..playback.formats import FormatProbe, StaticFormatProbe, can_play_format
from ..services.catalog import AudioCatalog, AudioFileRecord, AudioNotFoundError, content_type
from ..services.events import EventType, emit_structured_event
from ..services.settings import MAX_SKIP_SECONDS, PlayerSettings, SettingsStore


_STREAM_CACHE_CONTROL = "public, max-age=3600"
_SERIES_STREAM_PREFIX = "/api/audio/series/{series_id}/stream/"


_REQUEST_HEADER = "x-request-id"

_CORRELATION_VAR: contextvars.ContextVar[Dict[str, str]] = contextvars.ContextVar(
    "shiurbank_correlation",
    default={},
)


def _collect_correlation_context() -> Dict[str, str]:
    return dict(_CORRELATION_VAR.get())


def _incoming_request_id(scope: Scope) -> Optional[str]:
    for name, value in scope.get("headers") or []:
        if name.decode("latin-1").lower() == _REQUEST_HEADER:
            candidate = value.decode("latin-1").strip()
            if candidate:
                return candidate[:64]
    return None


class RequestContextMiddleware:
    """Tag each HTTP request with a correlation id and echo it back as ``X-Request-ID``.

    A client-supplied ``X-Request-ID`` is reused so player logs and server logs
    line up; otherwise a fresh id is generated.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or uuid.uuid4().hex
        scope_state = scope.setdefault("state", {})
        if isinstance(scope_state, dict):
            scope_state["request_id"] = request_id
        else:
            setattr(scope_state, "request_id", request_id)
        correlation = {"request_id": request_id}
        method = scope.get("method")
        if isinstance(method, str):
            correlation["method"] = method.upper()

        async def send_with_request_id(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers = list(message.get("headers") or [])
                headers.append((b"x-request-id", request_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        token = _CORRELATION_VAR.set(correlation)
        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            _CORRELATION_VAR.reset(token)


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that injects correlation context into records."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple[Any, Dict[str, Any]]:  # type: ignore[override]
        extra: Dict[str, Any] = dict(self.extra)
        provided = kwargs.get("extra")
        if isinstance(provided, dict):
            extra.update(provided)
        correlation = _collect_correlation_context()
        for key, value in correlation.items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


LOGGER = ContextualLoggerAdapter(logging.getLogger(__name__), {})
EVENT_LOGGER = ContextualLoggerAdapter(logging.getLogger("shiurbank.events"), {})


def _emit_event(event_type: str, message: str, **details: Any) -> None:
    """Emit a structured event tagged with the current request's correlation id."""

    emit_structured_event(
        event_type,
        message,
        correlation=_collect_correlation_context(),
        logger=EVENT_LOGGER,
        **details,
    )


def _log_event(message: str, **context: Any) -> None:
    _emit_event(EventType.APP, message, context=context)



def normalize_root_path(value: Optional[str]) -> str:
    """Return *value* as a proxy prefix: leading slash, no trailing slash, or ``""``."""

    if value is None:
        return ""
    normalized = value.strip()
    if not normalized:
        return ""
    if not normalized.startswith("/"):
        normalized = f"/{normalized}"
    return normalized.rstrip("/")


def _parse_formats(raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


def _serialize_audio(
    record: AudioFileRecord,
    *,
    probe: FormatProbe,
    series_id: Optional[int] = None,
) -> Dict[str, Any]:
    if series_id is None:
        stream_url = default_stream_url(record.locator)
    else:
        stream_url = _SERIES_STREAM_PREFIX.format(series_id=series_id) + quote(
            record.locator, safe=""
        )
    return {
        "locator": record.locator,
        "name": record.name,
        "mime_type": record.mime_type,
        "size_bytes": record.size_bytes,
        "duration_seconds": record.duration_seconds,
        "stream_url": stream_url,
        "supported": can_play_format(probe, record.mime_type),
    }


class SettingsPayload(BaseModel):
    playback_rate: float = 1.0
    skip_seconds: float = Field(15.0, gt=0, le=MAX_SKIP_SECONDS)

    @field_validator("playback_rate")
    @classmethod
    def _check_rate(cls, value: float) -> float:
        return validate_rate(value)


def create_app(
    catalog: AudioCatalog,
    *,
    config: AppConfig,
    root_path: str | None = None,
    format_probe: Optional[FormatProbe] = None,
) -> FastAPI:
    """Return a configured FastAPI application."""

    normalized_root = normalize_root_path(root_path)
    app = FastAPI(
        title="ShiurBank",
        description="Stream shiurim from any device",
        root_path=normalized_root,
    )
    app.state.server = None

    catalog.configure_event_emitter(_emit_event)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    default_probe = format_probe or StaticFormatProbe(config.player.supported_mime_types)
    settings_store = SettingsStore(config)
    app.state.catalog = catalog
    app.state.settings_store = settings_store

    def _stream(locator: str, series_id: Optional[int] = None) -> FileResponse:
        try:
            target = catalog.resolve(locator, series_id)
        except AudioNotFoundError as error:
            LOGGER.debug("Stream request rejected: %s", error)
            raise HTTPException(status_code=404, detail="Audio file not found") from error
        _log_event("Streaming audio", locator=locator, series_id=series_id)
        return FileResponse(
            target,
            media_type=content_type(target.name),
            filename=target.name,
            content_disposition_type="inline",
            headers={"Cache-Control": _STREAM_CACHE_CONTROL},
        )

    def _list(series_id: Optional[int], formats: Optional[str]) -> Any:
        requested = _parse_formats(formats)
        probe = StaticFormatProbe(requested) if requested is not None else default_probe
        _log_event("Listing audio files", series_id=series_id, formats=requested)
        try:
            records = catalog.list_records(series_id)
        except (OSError, AudioNotFoundError) as error:
            LOGGER.error("Failed to list audio files: %s", error)
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "message": f"Failed to list audio files: {error}",
                },
            )
        files = [_serialize_audio(record, probe=probe, series_id=series_id) for record in records]
        _log_event(
            "Listed audio files",
            count=len(files),
            unsupported=sum(1 for item in files if not item["supported"]),
        )
        return {"success": True, "files": files}

    @app.get("/api/audio/list")
    async def list_audio(formats: Optional[str] = Query(None)) -> Any:
        return await asyncio.to_thread(_list, None, formats)

    @app.get("/api/audio/series/{series_id}/list")
    async def list_series_audio(series_id: int, formats: Optional[str] = Query(None)) -> Any:
        return await asyncio.to_thread(_list, series_id, formats)

    @app.get("/api/audio/stream/{file_name:path}")
    async def stream_audio(file_name: str) -> FileResponse:
        return _stream(file_name)

    @app.get("/api/audio/series/{series_id}/stream/{file_name:path}")
    async def stream_series_audio(series_id: int, file_name: str) -> FileResponse:
        return _stream(file_name, series_id)

    @app.get("/api/settings")
    async def get_settings() -> Dict[str, Any]:
        settings = settings_store.load()
        _log_event("Loaded settings", playback_rate=settings.playback_rate)
        return {"settings": asdict(settings)}

    @app.put("/api/settings")
    async def update_settings(payload: SettingsPayload) -> Dict[str, Any]:
        settings = PlayerSettings(
            playback_rate=payload.playback_rate,
            skip_seconds=payload.skip_seconds,
        )
        settings_store.save(settings)
        _log_event(
            "Persisted settings",
            playback_rate=settings.playback_rate,
            skip_seconds=settings.skip_seconds,
        )
        return {"settings": asdict(settings)}

    return app


__all__ = [
    "ContextualLoggerAdapter",
    "RequestContextMiddleware",
    "create_app",
    "normalize_root_path",
]
