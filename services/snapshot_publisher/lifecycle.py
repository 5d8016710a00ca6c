# services/snapshot_publisher/lifecycle.py
from __future__ import annotations
import asyncio, signal

from common.logging import get_logger

log = get_logger("snapshot_publisher")

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)

class StopToken:
    """
    The service's running flag. Only request_stop() writes it, and only once;
    the scheduler polls .running and waits on wait() between captures.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def running(self) -> bool:
        return not self._event.is_set()

    def request_stop(self, reason: str = "") -> None:
        if self._event.is_set():
            return
        log.info(f"stopping ({reason})" if reason else "stopping")
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

def install_signal_handlers(loop: asyncio.AbstractEventLoop, token: StopToken) -> None:
    for sig in STOP_SIGNALS:
        loop.add_signal_handler(sig, token.request_stop, sig.name)

def remove_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    for sig in STOP_SIGNALS:
        loop.remove_signal_handler(sig)
