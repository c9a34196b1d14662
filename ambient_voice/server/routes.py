"""
Route registration.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Create one Pipeline per websocket connection
- Route inbound frames:
    text   -> control signals
    binary -> tagged ingest frames (microphone PCM / wearable packet)
- Serialize outbound JSON events and speech frames onto the socket
"""

from __future__ import annotations

import asyncio
import json

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from ambient_voice.audio.frames import AudioSource
from ambient_voice.observability.logger import log_component
from ambient_voice.protocol.binary import IngestFrameError, decode_ingest_frame
from ambient_voice.session.bootstrap import build_pipeline
from ambient_voice.session.host_events import HostEvent
from ambient_voice.session.pipeline import Pipeline
from ambient_voice.speaker.profiles import InMemorySpeakerProfileStore


_COMPONENT = "server"


class _SocketSender:
    """Serializes sends from the pipeline's tasks onto one websocket."""

    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws
        self._lock = asyncio.Lock()

    async def send_json(self, event: HostEvent) -> None:
        async with self._lock:
            await self._ws.send_text(json.dumps(event, ensure_ascii=False))

    async def send_audio(self, frame: bytes) -> None:
        async with self._lock:
            await self._ws.send_bytes(frame)


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    @app.get("/health")
    async def health() -> dict[str, str]:  # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None:  # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        config = app.state.config
        sender = _SocketSender(ws)
        pipeline = build_pipeline(
            config=config,
            capabilities=app.state.capabilities,
            host_sink=sender.send_json,
            audio_sink=sender.send_audio,
            profiles=InMemorySpeakerProfileStore(config.speaker_profiles_path),
        )
        await pipeline.start()

        try:
            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect()

                if msg.get("text") is not None:
                    await pipeline.handle_control_text(msg["text"])

                elif msg.get("bytes") is not None:
                    _ingest(pipeline, msg["bytes"])

        except WebSocketDisconnect:
            log_component(
                _COMPONENT,
                "WS_DISCONNECTED",
                pipeline_id=pipeline.pipeline_id,
                reason="client_disconnect",
            )

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_component(
                _COMPONENT,
                "WS_FATAL_ERROR",
                pipeline_id=pipeline.pipeline_id,
                exception=type(exc).__name__,
                message=str(exc),
            )

        finally:
            await pipeline.stop()


def _ingest(pipeline: Pipeline, payload: bytes) -> None:
    try:
        frame = decode_ingest_frame(payload)
    except IngestFrameError as e:
        log_component(
            _COMPONENT,
            "INGEST_FRAME_REJECTED",
            pipeline_id=pipeline.pipeline_id,
            error=str(e),
            payload_len=len(payload),
        )
        return

    if frame.source is AudioSource.WEARABLE:
        pipeline.submit_wearable(frame.payload)
    else:
        pipeline.submit_microphone(frame.payload)
