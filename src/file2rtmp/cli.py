"""Command-line interface for file2rtmp."""

from __future__ import annotations

import asyncio
import sys

import aiohttp
import click

from .process import check_ffmpeg
from .settings import Settings


async def make_request(method: str, url: str, **kwargs):
    """Make an async HTTP request."""
    async with aiohttp.ClientSession() as session:
        async with session.request(method, url, **kwargs) as response:
            payload = await response.json()
            if response.status >= 400:
                raise click.ClickException(payload.get("error") or f"HTTP {response.status}")
            return payload


def _run(coro):
    try:
        return asyncio.run(coro)
    except click.ClickException:
        raise
    except Exception as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _echo_stream(stream: dict) -> None:
    click.echo(f"Stream ID: {stream['stream_id']}")
    status = stream["status"]
    if stream.get("reconnecting"):
        status += f" (reconnecting, attempt {stream.get('reconnect_attempt')})"
    click.echo(f"  Status: {status}")
    stats = stream.get("stats") or {}
    if stats:
        click.echo(f"  Time: {stats.get('time')}")
        click.echo(f"  Loop: {stats.get('loop_count')}")
    if stream.get("error"):
        click.echo(f"  Error: {stream['error']}")


@click.group()
def cli():
    """Push media files to RTMP endpoints with supervised ffmpeg processes."""
    pass


@cli.command()
@click.option("--host", help="Interface to bind")
@click.option("--port", type=int, help="Port to listen on")
def serve(host, port):
    """Run the HTTP API."""
    from .server import run

    settings = Settings.from_env()
    if host:
        settings.host = host
    if port:
        settings.port = port
    run(settings)


@cli.command()
@click.option("--ffmpeg-path", help="ffmpeg executable to probe")
def check(ffmpeg_path):
    """Check that ffmpeg is installed."""
    executable = ffmpeg_path or Settings.from_env().ffmpeg_path
    if asyncio.run(check_ffmpeg(executable)):
        click.echo(f"{executable}: available")
    else:
        click.echo(f"{executable}: not available", err=True)
        sys.exit(1)


@cli.command()
@click.option("--source", required=True, help="Media file to push")
@click.option("--rtmp-url", required=True, help="Base RTMP URL of the ingest endpoint")
@click.option("--stream-key", help="Stream key appended to the RTMP URL")
@click.option("--stream-id", help="Identifier for the stream (generated if omitted)")
@click.option("--loop", is_flag=True, help="Loop the source forever")
@click.option("--loop-count", type=int, help="Play the source N times (-1 = forever)")
@click.option("--start-time", type=float, help="Trim start in seconds")
@click.option("--end-time", type=float, help="Trim end in seconds")
@click.option("--duration", type=float, help="Stop after this many minutes")
@click.option("--resolution", type=click.Choice(["source", "1080p", "720p", "480p"]))
@click.option("--aspect-ratio", type=click.Choice(["source", "16:9", "9:16", "1:1", "4:3"]))
@click.option("--frame-rate", help="Output frame rate or 'source'")
@click.option("--bitrate", help="Video bitrate in kbps or 'auto'")
@click.option("--server", default="http://localhost:8000", help="Server URL")
def add_stream(
    source,
    rtmp_url,
    stream_key,
    stream_id,
    loop,
    loop_count,
    start_time,
    end_time,
    duration,
    resolution,
    aspect_ratio,
    frame_rate,
    bitrate,
    server,
):
    """Start pushing a file."""
    payload = {"source": source, "rtmp_url": rtmp_url}

    if stream_key:
        payload["stream_key"] = stream_key
    if stream_id:
        payload["stream_id"] = stream_id
    if loop:
        payload["loop"] = True
    if loop_count is not None:
        payload["loop_count"] = loop_count
    if start_time is not None:
        payload["start_time"] = start_time
    if end_time is not None:
        payload["end_time"] = end_time
    if duration is not None:
        payload["duration"] = duration
    if resolution:
        payload["resolution"] = resolution
    if aspect_ratio:
        payload["aspect_ratio"] = aspect_ratio
    if frame_rate:
        payload["frame_rate"] = frame_rate if frame_rate == "source" else float(frame_rate)
    if bitrate:
        payload["bitrate"] = bitrate if bitrate == "auto" else int(bitrate)

    result = _run(make_request("POST", f"{server}/streams", json=payload))
    click.echo("Stream started!")
    _echo_stream(result)


@cli.command()
@click.option("--stream-id", required=True, help="Stream ID to stop")
@click.option("--server", default="http://localhost:8000", help="Server URL")
def stop_stream(stream_id, server):
    """Stop a stream."""
    _run(make_request("DELETE", f"{server}/streams/{stream_id}"))
    click.echo(f"Stream {stream_id} stopped")


@cli.command()
@click.option("--server", default="http://localhost:8000", help="Server URL")
def list_streams(server):
    """List all known streams."""
    result = _run(make_request("GET", f"{server}/streams"))
    streams = result.get("streams", [])

    if not streams:
        click.echo("No streams")
        return

    click.echo(f"Found {len(streams)} stream(s):")
    click.echo()
    for stream in streams:
        _echo_stream(stream)
        click.echo()


@cli.command()
@click.option("--stream-id", required=True, help="Stream ID to check")
@click.option("--server", default="http://localhost:8000", help="Server URL")
def get_stream(stream_id, server):
    """Show the status of a stream."""
    stream = _run(make_request("GET", f"{server}/streams/{stream_id}"))
    _echo_stream(stream)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
