from __future__ import annotations
import json
from typing import Optional
from pydantic import BaseModel

class FrameMetadata(BaseModel):
    timestamp: str    # UTC, YYYYMMDDHHMMSS
    size: int         # bytes published on <topic>/imagedata
    width: Optional[int] = None
    height: Optional[int] = None

    def to_payload(self) -> bytes:
        # compact, stable field names; unknown dimensions are left out
        return json.dumps(self.model_dump(exclude_none=True), separators=(",", ":")).encode("utf-8")
