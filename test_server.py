#!/usr/bin/env python3
"""Test the HTTP adapter with Quart's test client."""

import asyncio
import os
import sys
from pathlib import Path
from tempfile import TemporaryDirectory

from file2rtmp import Settings, StreamManager
from file2rtmp.server import config_from_payload, create_app


def _create_fake_ffmpeg(directory: Path) -> Path:
    """Create a fake ffmpeg that answers -version and otherwise keeps streaming."""
    script_path = directory / "ffmpeg"
    script_path.write_text(
        "#!/bin/sh\n"
        'if [ "$1" = "-version" ]; then\n'
        "  echo 'ffmpeg version 6.1'\n"
        "  exit 0\n"
        "fi\n"
        'echo "frame=25 fps=25 q=23.0 size=50kB time=00:00:01.00 bitrate=400kbits/s" >&2\n'
        "exec sleep 30\n"
    )
    os.chmod(script_path, 0o755)
    return script_path


def test_config_from_camel_case_payload():
    config = config_from_payload({
        "source": "clip.mp4",
        "rtmpUrl": "rtmp://x/live/",
        "streamKey": "key",
        "loopCount": "3",
        "startTime": 5,
        "endTime": "20",
        "aspectRatio": "16:9",
        "frameRate": 30,
        "bitrate": "auto",
    })

    assert config.destination == "rtmp://x/live/key"
    assert config.loop_count == 3
    assert config.clip_duration == 15.0
    assert config.aspect_ratio == "16:9"
    assert config.loop is False
    print("✓ camelCase payload test passed")


def test_payload_value_parsing():
    base = {"source": "clip.mp4", "rtmp_url": "rtmp://x/live"}

    assert config_from_payload({**base, "loop": "false"}).loop is False
    assert config_from_payload({**base, "loop": "true"}).loop is True
    assert config_from_payload({**base, "loop": False}).loop is False
    assert config_from_payload({**base, "bitrate": "2500"}).bitrate == 2500.0
    assert config_from_payload({**base, "frameRate": "source"}).frame_rate == "source"

    for bad in ({"loop": "sometimes"}, {"bitrate": "fast"}, {"frame_rate": "smooth"}, {"bitrate": -1}):
        try:
            config_from_payload({**base, **bad})
        except ValueError:
            pass
        else:
            raise AssertionError(f"{bad} was accepted")
    print("✓ Payload value parsing test passed")


def test_rejected_config_leaves_no_stream():
    async def scenario(tmpdir: Path):
        manager = StreamManager(Settings(ffmpeg_path=str(_create_fake_ffmpeg(tmpdir))))
        client = create_app(manager=manager, settings=manager.settings).test_client()

        payload = {"stream_id": "z", "source": "clip.mp4", "rtmp_url": "rtmp://x/live", "bitrate": "fast"}
        response = await client.post("/streams", json=payload)
        assert response.status_code == 400

        response = await client.get("/streams/z")
        assert response.status_code == 404
        assert (await response.get_json())["status"] == "not_found"

        payload["bitrate"] = 2500
        response = await client.post("/streams", json=payload)
        assert response.status_code == 201

        await manager.stop_all()

    with TemporaryDirectory() as tmpdir:
        asyncio.run(scenario(Path(tmpdir)))
    print("✓ Rejected config test passed")


def test_stream_routes():
    async def scenario(tmpdir: Path):
        manager = StreamManager(Settings(ffmpeg_path=str(_create_fake_ffmpeg(tmpdir))))
        app = create_app(manager=manager, settings=manager.settings)
        client = app.test_client()

        response = await client.get("/streams/unknown")
        assert response.status_code == 404
        body = await response.get_json()
        assert body["status"] == "not_found"
        assert body["stats"] == {}

        response = await client.post("/streams", json={"rtmp_url": "rtmp://x/live"})
        assert response.status_code == 400

        response = await client.post("/streams", json={"source": "clip.mp4"})
        assert response.status_code == 400

        response = await client.post("/streams", json={"source": "clip.mp4", "rtmp_url": "rtmp://x/live", "loop_count": "many"})
        assert response.status_code == 400

        payload = {"stream_id": "s1", "source": "clip.mp4", "rtmpUrl": "rtmp://x/live", "loopCount": -1}
        response = await client.post("/streams", json=payload)
        assert response.status_code == 201
        body = await response.get_json()
        assert body["stream_id"] == "s1"
        assert body["status"] == "running"

        response = await client.post("/streams", json=payload)
        assert response.status_code == 409

        response = await client.get("/streams")
        body = await response.get_json()
        assert [s["stream_id"] for s in body["streams"]] == ["s1"]

        response = await client.delete("/streams/s1")
        assert response.status_code == 200
        response = await client.delete("/streams/s1")
        assert response.status_code == 404

        response = await client.get("/streams/s1")
        body = await response.get_json()
        assert body["status"] == "stopped"

        response = await client.get("/health")
        assert response.status_code == 200
        assert (await response.get_json()) == {"ffmpeg": True}

        await manager.stop_all()

    with TemporaryDirectory() as tmpdir:
        asyncio.run(scenario(Path(tmpdir)))
    print("✓ Stream routes test passed")


def test_health_without_ffmpeg():
    async def scenario():
        manager = StreamManager(Settings(ffmpeg_path="/nonexistent/ffmpeg"))
        client = create_app(manager=manager, settings=manager.settings).test_client()

        response = await client.get("/health")
        assert response.status_code == 503
        assert (await response.get_json()) == {"ffmpeg": False}

    asyncio.run(scenario())
    print("✓ Health check test passed")


if __name__ == "__main__":
    test_config_from_camel_case_payload()
    test_payload_value_parsing()
    test_rejected_config_leaves_no_stream()
    test_stream_routes()
    test_health_without_ffmpeg()
    sys.exit(0)
