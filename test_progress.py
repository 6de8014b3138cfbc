#!/usr/bin/env python3
"""Test progress extraction and reconnect decisions."""

import sys

from file2rtmp.policy import ReconnectAction, ReconnectPolicy
from file2rtmp.process import ProcessExit
from file2rtmp.progress import parse_progress


def test_loop_count_from_clip_window():
    update = parse_progress("frame=2250 fps=25 q=23.0 size=1024kB time=00:01:30.04 bitrate=93.2kbits/s", 45)
    assert update is not None
    assert update.time == "00:01:30"
    assert update.elapsed == 90
    assert update.loop_count == 3
    print("✓ Loop count derivation test passed")


def test_last_marker_wins():
    chunk = "frame=10 time=00:00:01.00 bitrate=1k\rframe=20 time=00:00:02.00 bitrate=1k\rframe=30 time=00:0"
    update = parse_progress(chunk)
    assert update is not None
    assert update.time == "00:00:02"
    assert update.loop_count is None
    print("✓ Last marker test passed")


def test_unrelated_output():
    assert parse_progress("Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'clip.mp4':") is None
    assert parse_progress("") is None
    print("✓ Unrelated output test passed")


def test_non_positive_clip_is_ignored():
    assert parse_progress("time=00:00:10.00", 0).loop_count is None
    assert parse_progress("time=00:00:10.00", -5).loop_count is None
    print("✓ Non-positive clip test passed")


def test_reconnect_policy():
    policy = ReconnectPolicy(max_attempts=3, delay=0.1)

    assert policy.decide(3, ProcessExit(returncode=0)) is ReconnectAction.COMPLETE
    assert policy.decide(0, ProcessExit(returncode=1)) is ReconnectAction.RETRY
    assert policy.decide(2, ProcessExit(returncode=None, error="No such file")) is ReconnectAction.RETRY
    assert policy.decide(3, ProcessExit(returncode=1)) is ReconnectAction.GIVE_UP
    assert policy.decide(3, ProcessExit(returncode=None, error="No such file")) is ReconnectAction.GIVE_UP
    print("✓ Reconnect policy test passed")


def test_exit_reason():
    assert ProcessExit(returncode=0).reason is None
    assert ProcessExit(returncode=1, stderr_tail=["a", "Connection refused"]).reason == "Connection refused"
    assert ProcessExit(returncode=255).reason == "ffmpeg exited with code 255"
    assert ProcessExit(returncode=None, error="boom").reason == "boom"
    print("✓ Exit reason test passed")


if __name__ == "__main__":
    test_loop_count_from_clip_window()
    test_last_marker_wins()
    test_unrelated_output()
    test_non_positive_clip_is_ignored()
    test_reconnect_policy()
    test_exit_reason()
    sys.exit(0)
