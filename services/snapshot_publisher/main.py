# services/snapshot_publisher/main.py
from __future__ import annotations
import asyncio, sys
from typing import Optional, Sequence

from common.bus import MessageBus
from common.config import ConfigError, load_config
from common.logging import get_logger, set_level
from common.pipe_capture import CaptureBuffer
from services.snapshot_publisher.capture import FrameCapture
from services.snapshot_publisher.lifecycle import StopToken, install_signal_handlers, remove_signal_handlers
from services.snapshot_publisher.publisher import SnapshotPublisher
from services.snapshot_publisher.scheduler import Scheduler

log = get_logger("snapshot_publisher")

async def main(argv: Optional[Sequence[str]] = None) -> int:
    log.info("snapshot_publisher starting…")
    token = StopToken()
    loop = asyncio.get_running_loop()
    install_signal_handlers(loop, token)
    try:
        return await _serve(argv, token)
    finally:
        remove_signal_handlers(loop)

async def _serve(argv: Optional[Sequence[str]], token: StopToken) -> int:
    try:
        cfg = load_config(argv)
    except ConfigError as e:
        log.error(f"failed to load config: {e}")
        return 1
    if cfg.debug:
        set_level("DEBUG")

    bus = MessageBus(cfg.redis_url, client_name=cfg.client_name)
    try:
        await bus.connect()
    except Exception as e:
        log.error(f"failed to connect bus {cfg.redis_url}: {e}")
        return 1

    try:
        if not token.running:
            log.info("stop requested during startup, not scheduling")
        else:
            buffer = CaptureBuffer(cfg.buffer_size)
            capture = FrameCapture(buffer, cfg.rtsp_url, cfg.ffmpeg_bin, cfg.ffmpeg_options)
            publisher = SnapshotPublisher(bus, cfg.topic)
            scheduler = Scheduler(capture, publisher, cfg.interval, token)

            log.info(f"Capturing rtsp_url={cfg.rtsp_url} → topic={cfg.topic}/{{imagedata,metadata}} "
                     f"interval={cfg.interval}s buffer={cfg.buffer_size}")
            await scheduler.run()
    finally:
        await bus.close()
    log.info("stopped")
    return 0

def run() -> None:
    sys.exit(asyncio.run(main()))

if __name__ == "__main__":
    run()
