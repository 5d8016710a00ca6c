# common/config.py
from __future__ import annotations
import argparse, shlex
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from common.pipe_capture import DEFAULT_CAPACITY

DEFAULT_CONFIG_PATH = "config/config.yaml"
DEFAULT_FFMPEG_OPTIONS = "-q:v 6 -pix_fmt yuvj420p -chroma_sample_location center"

class ConfigError(Exception):
    pass

class SnapshotConfig(BaseModel):
    rtsp_url: str
    interval: int = 30
    redis_url: str = "redis://127.0.0.1:6379/0"
    client_name: str = "snapshot-publisher"
    topic: str = "snapshots"
    ffmpeg_bin: str = "ffmpeg"
    ffmpeg_options: List[str] = shlex.split(DEFAULT_FFMPEG_OPTIONS)
    buffer_size: int = DEFAULT_CAPACITY
    debug: bool = False

    @field_validator("rtsp_url")
    @classmethod
    def _url_present(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("rtsp_url must be set")
        return v.strip()

    @field_validator("interval", "buffer_size")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("topic")
    @classmethod
    def _topic_shape(cls, v: str) -> str:
        v = v.strip()
        if not v or v.endswith("/"):
            raise ValueError(f"invalid topic prefix '{v}'")
        return v

    @field_validator("ffmpeg_options", mode="before")
    @classmethod
    def _split_options(cls, v: Any) -> Any:
        # accept the same "-q:v 6 -pix_fmt ..." string the command line takes
        if isinstance(v, str):
            return shlex.split(v)
        return v

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Capture RTSP snapshots periodically and publish them to the message bus.")
    p.add_argument("--config", default=None, help=f"YAML config file (default: {DEFAULT_CONFIG_PATH} if present)")
    p.add_argument("--rtsp-url", dest="rtsp_url")
    p.add_argument("--interval", type=int, help="seconds between captures (default: 30)")
    p.add_argument("--redis-url", dest="redis_url")
    p.add_argument("--client-name", dest="client_name")
    p.add_argument("--topic", help="topic prefix; publishes <topic>/imagedata and <topic>/metadata")
    p.add_argument("--ffmpeg", dest="ffmpeg_bin")
    p.add_argument("--ffmpeg-options", dest="ffmpeg_options", help=f'extra output options (default: "{DEFAULT_FFMPEG_OPTIONS}")')
    p.add_argument("--buffer-size", dest="buffer_size", type=int, help="capture buffer size in bytes")
    p.add_argument("--debug", action="store_true", default=None)
    return p

def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to read config {path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"config {path} must be a mapping")
    return cfg

def _section(cfg: Dict[str, Any], name: str, path: Path) -> Dict[str, Any]:
    section = cfg.get(name, {}) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"config {path}: '{name}' must be a mapping")
    return section

def _values_from_yaml(cfg: Dict[str, Any], path: Path) -> Dict[str, Any]:
    runtime = _section(cfg, "runtime", path)
    snap = _section(cfg, "snapshot", path)
    values = {k: v for k, v in snap.items() if k in SnapshotConfig.model_fields}
    if "redis_url" not in values and runtime.get("redis_url"):
        values["redis_url"] = runtime["redis_url"]
    return values

def load_config(argv: Optional[Sequence[str]] = None) -> SnapshotConfig:
    """
    defaults < YAML (snapshot: section, runtime.redis_url) < command line.
    Raises ConfigError for anything that keeps the service from starting.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        if e.code == 0:  # --help
            raise
        # argparse already printed usage
        raise ConfigError(f"invalid command line (exit {e.code})") from None

    values: Dict[str, Any] = {}
    path = Path(args.config or DEFAULT_CONFIG_PATH)
    if args.config and not path.is_file():
        raise ConfigError(f"config file not found: {path}")
    if path.is_file():
        values.update(_values_from_yaml(_read_yaml(path), path))

    for key, val in vars(args).items():
        if key != "config" and val is not None:
            values[key] = val
    values.setdefault("rtsp_url", "")

    try:
        return SnapshotConfig(**values)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
