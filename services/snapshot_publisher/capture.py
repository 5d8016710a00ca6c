# services/snapshot_publisher/capture.py
from __future__ import annotations
import io, time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from common import pipe_capture
from common.pipe_capture import CaptureBuffer
from common.logging import get_logger

log = get_logger("snapshot_publisher")

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

@dataclass
class FrameRecord:
    timestamp: str   # UTC at capture start
    size: int
    duration: int    # whole seconds spent in ffmpeg
    width: Optional[int] = None
    height: Optional[int] = None

def build_ffmpeg_arguments(rtsp_url: str, options: Sequence[str]) -> List[str]:
    """One frame over TCP, no banner/logging, JPEG stream to stdout."""
    return [
        "-y",
        "-loglevel", "quiet",
        "-rtsp_transport", "tcp",
        "-i", rtsp_url,
        "-vframes", "1",
        *options,
        "-f", "image2pipe",
        "-",
    ]

def format_timestamp(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime(TIMESTAMP_FORMAT)

def _probe_dimensions(data: memoryview) -> Optional[Tuple[int, int]]:
    # header parse only; pixel data is never decoded
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        log.debug(f"could not read image dimensions: {e}")
        return None

class FrameCapture:
    def __init__(self, buffer: CaptureBuffer, rtsp_url: str, ffmpeg_bin: str = "ffmpeg",
                 options: Sequence[str] = (), clock: Callable[[], float] = time.time):
        self.buffer = buffer
        self.command = ffmpeg_bin
        self.arguments = build_ffmpeg_arguments(rtsp_url, options)
        self._clock = clock

    async def capture_frame(self) -> Optional[FrameRecord]:
        """
        Grab one frame into the shared buffer. On success the image is
        self.buffer.view(record.size) until the next call.
        """
        started = self._clock()
        size = await pipe_capture.capture(self.command, self.arguments, self.buffer)
        finished = self._clock()
        if size == 0:
            return None

        record = FrameRecord(
            timestamp=format_timestamp(started),
            size=size,
            duration=max(0, int(finished - started)),
        )
        dims = _probe_dimensions(self.buffer.view(size))
        if dims:
            record.width, record.height = dims
        return record
