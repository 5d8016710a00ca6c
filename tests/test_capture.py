"""Tests for services/snapshot_publisher/capture.py."""
from __future__ import annotations

import pytest

from common import pipe_capture
from common.pipe_capture import CaptureBuffer
from services.snapshot_publisher.capture import (
    FrameCapture,
    build_ffmpeg_arguments,
    format_timestamp,
)

DEFAULT_OPTS = ["-q:v", "6", "-pix_fmt", "yuvj420p", "-chroma_sample_location", "center"]


def _fake_capture(payload: bytes, clock=None, takes: float = 0.0):
    async def fake(command, arguments, buffer):
        if clock is not None:
            clock.advance(takes)
        if not payload:
            return 0
        buffer.write_at(0, payload)
        return len(payload)
    return fake


def test_ffmpeg_arguments_exact():
    args = build_ffmpeg_arguments("rtsp://cam/stream", DEFAULT_OPTS)
    assert args == [
        "-y", "-loglevel", "quiet", "-rtsp_transport", "tcp",
        "-i", "rtsp://cam/stream", "-vframes", "1",
        "-q:v", "6", "-pix_fmt", "yuvj420p", "-chroma_sample_location", "center",
        "-f", "image2pipe", "-",
    ]


def test_ffmpeg_arguments_without_options():
    args = build_ffmpeg_arguments("rtsp://cam/stream", [])
    assert args[-3:] == ["-f", "image2pipe", "-"]
    assert args[args.index("-vframes") + 1] == "1"


def test_timestamp_is_utc():
    # 2023-11-14T22:13:20Z
    assert format_timestamp(1_700_000_000) == "20231114221320"


@pytest.mark.asyncio
async def test_capture_frame_success(monkeypatch, clock, jpeg_bytes):
    monkeypatch.setattr(pipe_capture, "capture", _fake_capture(jpeg_bytes, clock, takes=5))
    fc = FrameCapture(CaptureBuffer(1024 * 1024), "rtsp://cam/stream", "ffmpeg", DEFAULT_OPTS, clock=clock)

    record = await fc.capture_frame()

    assert record is not None
    assert record.timestamp == "20231114221320"
    assert record.size == len(jpeg_bytes)
    assert record.duration == 5
    assert (record.width, record.height) == (64, 48)
    assert bytes(fc.buffer.view(record.size)) == jpeg_bytes


@pytest.mark.asyncio
async def test_capture_frame_passes_command(monkeypatch, clock):
    seen = {}

    async def fake(command, arguments, buffer):
        seen["command"], seen["arguments"] = command, list(arguments)
        return 0

    monkeypatch.setattr(pipe_capture, "capture", fake)
    fc = FrameCapture(CaptureBuffer(16), "rtsp://cam/x", "/usr/bin/ffmpeg", ["-q:v", "2"], clock=clock)
    await fc.capture_frame()

    assert seen["command"] == "/usr/bin/ffmpeg"
    assert seen["arguments"] == build_ffmpeg_arguments("rtsp://cam/x", ["-q:v", "2"])


@pytest.mark.asyncio
async def test_capture_frame_failure_returns_none(monkeypatch, clock):
    monkeypatch.setattr(pipe_capture, "capture", _fake_capture(b""))
    fc = FrameCapture(CaptureBuffer(16), "rtsp://cam/x", clock=clock)
    assert await fc.capture_frame() is None


@pytest.mark.asyncio
async def test_unparseable_image_still_succeeds(monkeypatch, clock):
    monkeypatch.setattr(pipe_capture, "capture", _fake_capture(b"not an image at all"))
    fc = FrameCapture(CaptureBuffer(64), "rtsp://cam/x", clock=clock)

    record = await fc.capture_frame()

    assert record is not None
    assert record.size == len(b"not an image at all")
    assert record.width is None and record.height is None


def _huge_header(jpeg: bytes, width: int, height: int) -> bytes:
    # SOF0: ff c0, length(2), precision(1), height(2), width(2)
    at = jpeg.index(b"\xff\xc0")
    return (jpeg[:at + 5] + height.to_bytes(2, "big") + width.to_bytes(2, "big")
            + jpeg[at + 9:])


@pytest.mark.asyncio
async def test_oversized_header_still_succeeds(monkeypatch, clock, jpeg_bytes):
    bomb = _huge_header(jpeg_bytes, 60000, 60000)
    monkeypatch.setattr(pipe_capture, "capture", _fake_capture(bomb))
    fc = FrameCapture(CaptureBuffer(1024 * 1024), "rtsp://cam/x", clock=clock)

    record = await fc.capture_frame()

    assert record is not None
    assert record.size == len(bomb)
    assert record.width is None and record.height is None
