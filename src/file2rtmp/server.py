"""HTTP adapter exposing the stream operations."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from quart import Quart, jsonify, request

from .manager import StreamExistsError, StreamManager
from .models import NOT_FOUND, StreamConfig
from .settings import Settings

logger = logging.getLogger(__name__)

# JSON field -> StreamConfig field; camelCase is what the polling UI sends.
CONFIG_FIELDS = {
    "rtmp_url": ("rtmp_url", "rtmpUrl"),
    "stream_key": ("stream_key", "streamKey"),
    "loop": ("loop",),
    "loop_count": ("loop_count", "loopCount"),
    "start_time": ("start_time", "startTime"),
    "end_time": ("end_time", "endTime"),
    "duration": ("duration",),
    "resolution": ("resolution",),
    "aspect_ratio": ("aspect_ratio", "aspectRatio"),
    "frame_rate": ("frame_rate", "frameRate"),
    "bitrate": ("bitrate",),
}

NUMERIC_FIELDS = {
    "loop_count": int,
    "start_time": float,
    "end_time": float,
    "duration": float,
}

# Fields that take either a number or a passthrough keyword.
KEYWORD_FIELDS = {
    "bitrate": "auto",
    "frame_rate": "source",
}

TRUE_STRINGS = {"true", "yes", "on", "1"}
FALSE_STRINGS = {"false", "no", "off", "0", ""}


def config_from_payload(data: Dict[str, Any]) -> StreamConfig:
    """Build a StreamConfig from a request body, raising ValueError on bad input."""
    kwargs: Dict[str, Any] = {}
    for name, keys in CONFIG_FIELDS.items():
        for key in keys:
            if data.get(key) is not None:
                kwargs[name] = data[key]
                break

    for name, cast in NUMERIC_FIELDS.items():
        if name in kwargs:
            try:
                kwargs[name] = cast(kwargs[name])
            except (TypeError, ValueError):
                raise ValueError(f"{name} must be a number") from None

    for name, keyword in KEYWORD_FIELDS.items():
        value = kwargs.get(name)
        if isinstance(value, str) and value != keyword:
            try:
                kwargs[name] = float(value)
            except ValueError:
                raise ValueError(f"{name} must be a number or '{keyword}'") from None

    if "loop" in kwargs:
        kwargs["loop"] = _parse_bool(kwargs["loop"])

    return StreamConfig(**kwargs)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in TRUE_STRINGS | FALSE_STRINGS:
        return value.strip().lower() in TRUE_STRINGS
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValueError("loop must be a boolean")


def create_app(manager: Optional[StreamManager] = None, settings: Optional[Settings] = None) -> Quart:
    settings = settings or Settings.from_env()
    manager = manager or StreamManager(settings)

    app = Quart(__name__)
    app.config["STREAM_MANAGER"] = manager

    @app.after_serving
    async def shutdown() -> None:
        await manager.stop_all()

    @app.route("/api")
    async def api_info():
        """API endpoint with API info."""
        return jsonify({
            "service": "file2rtmp",
            "version": "0.1.0",
            "endpoints": {
                "health": "/health",
                "streams": "/streams",
                "stream": "/streams/<stream_id>",
            },
        })

    @app.route("/health")
    async def health():
        """Report whether ffmpeg can be invoked."""
        available = await manager.check_availability()
        return jsonify({"ffmpeg": available}), 200 if available else 503

    @app.route("/streams", methods=["GET"])
    async def list_streams():
        """List all known streams."""
        streams = await manager.list_streams()
        return jsonify({"streams": [s.to_dict() for s in streams]})

    @app.route("/streams", methods=["POST"])
    async def start_stream():
        """Start pushing a file to an RTMP endpoint."""
        data = await request.get_json(silent=True)

        if not data or not data.get("source"):
            return jsonify({"error": "source is required"}), 400

        try:
            config = config_from_payload(data)
        except (TypeError, ValueError) as exc:
            return jsonify({"error": str(exc)}), 400

        stream_id = str(data.get("stream_id") or uuid4())
        try:
            await manager.start(stream_id, data["source"], config)
        except StreamExistsError as exc:
            return jsonify({"error": str(exc)}), 409

        snapshot = await manager.status(stream_id)
        return jsonify(snapshot.to_dict()), 201

    @app.route("/streams/<stream_id>", methods=["GET"])
    async def get_stream(stream_id: str):
        """Get the status of a specific stream."""
        snapshot = await manager.status(stream_id)
        code = 404 if snapshot.status == NOT_FOUND else 200
        return jsonify(snapshot.to_dict()), code

    @app.route("/streams/<stream_id>", methods=["DELETE"])
    async def stop_stream(stream_id: str):
        """Stop a stream."""
        stopped = await manager.stop(stream_id)

        if not stopped:
            return jsonify({"error": "Stream not found or not active"}), 404

        return jsonify({"message": "Stream stopped"}), 200

    return app


def run(settings: Optional[Settings] = None) -> None:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app = create_app(settings=settings)
    logger.info("Serving on %s:%d", settings.host, settings.port)
    app.run(host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
