"""Shared fixtures: log capture for the service's non-propagating loggers."""
from __future__ import annotations

import io
import logging

import pytest
from PIL import Image

from tests.fakes import FakeClock

_LOGGERS = ("snapshot_publisher", "pipe_capture", "bus")


@pytest.fixture
def service_logs(caplog):
    """caplog wired directly to the service loggers (they do not propagate)."""
    caplog.set_level(logging.DEBUG)
    loggers = [logging.getLogger(n) for n in _LOGGERS]
    for lg in loggers:
        lg.addHandler(caplog.handler)
    yield caplog
    for lg in loggers:
        lg.removeHandler(caplog.handler)


@pytest.fixture
def jpeg_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (64, 48), (200, 30, 30)).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
