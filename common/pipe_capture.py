# common/pipe_capture.py
from __future__ import annotations
import asyncio
from typing import Sequence

from common.logging import get_logger

log = get_logger("pipe_capture")

DEFAULT_CAPACITY = 5 * 1024 * 1024  # 5MB
READ_CHUNK = 64 * 1024

class CaptureBuffer:
    """
    Fixed-size byte arena, allocated once and reused every cycle.
    Contents are only meaningful between a successful capture and the next one.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._data = bytearray(capacity)

    @property
    def capacity(self) -> int:
        return len(self._data)

    def view(self, size: int) -> memoryview:
        return memoryview(self._data)[:size]

    def write_at(self, offset: int, chunk: bytes) -> None:
        self._data[offset:offset + len(chunk)] = chunk

async def capture(command: str, arguments: Sequence[str], buffer: CaptureBuffer) -> int:
    """
    Run <command> <arguments...>, collect its stdout into buffer starting at 0.
    stderr goes to /dev/null. Returns the byte count on success, 0 on any failure:
      - the command cannot be spawned
      - stdout does not fit in the buffer
      - the command exits non-zero (bytes already read are discarded)
      - the command writes nothing
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            command, *arguments,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        log.error(f"command ({command}) could not be started: {e}")
        return 0

    total = 0
    overflow = False
    capacity = buffer.capacity
    try:
        while True:
            if total >= capacity:
                # full; only EOF right now means the output fit exactly
                if await proc.stdout.read(1):
                    overflow = True
                break
            chunk = await proc.stdout.read(min(READ_CHUNK, capacity - total))
            if not chunk:
                break
            buffer.write_at(total, chunk)
            total += len(chunk)
    finally:
        if overflow and proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:  # exited on its own meanwhile
                pass
        status = await proc.wait()

    if overflow:
        log.warning(f"command ({command}) data too large for buffer ({capacity} bytes)")
        return 0
    if status != 0:
        log.warning(f"command ({command}) exited with status {status}")
        return 0
    if total == 0:
        log.warning(f"command ({command}) produced no output")
        return 0
    log.debug(f"command ({command}) captured {total} bytes")
    return total
