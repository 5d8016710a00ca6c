# services/snapshot_publisher/publisher.py
from __future__ import annotations

from common.logging import get_logger
from common.schemas import FrameMetadata
from services.snapshot_publisher.capture import FrameRecord

log = get_logger("snapshot_publisher")

IMAGE_SUFFIX = "/imagedata"
METADATA_SUFFIX = "/metadata"

def build_metadata(record: FrameRecord) -> FrameMetadata:
    return FrameMetadata(
        timestamp=record.timestamp,
        size=record.size,
        width=record.width,
        height=record.height,
    )

class SnapshotPublisher:
    """Sends one frame as two messages: image bytes first, then its metadata."""

    def __init__(self, bus, topic: str):
        self.bus = bus
        self.image_topic = topic + IMAGE_SUFFIX
        self.metadata_topic = topic + METADATA_SUFFIX

    async def publish(self, image, record: FrameRecord) -> bool:
        if not await self.bus.publish(self.image_topic, image):
            log.warning(f"[publish] image failed topic={self.image_topic} ts={record.timestamp}; metadata not sent")
            return False
        # no rollback of the image if this one fails
        if not await self.bus.publish(self.metadata_topic, build_metadata(record).to_payload()):
            log.warning(f"[publish] metadata failed topic={self.metadata_topic} ts={record.timestamp}")
            return False
        log.info(f"published '{record.timestamp}' ({record.size} bytes) [{record.duration} seconds]")
        return True
