"""ffprobe adapter and aspect-ratio classification."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from services.errors import ProbeFailure
from services.tool_runner import ToolRunner, run_tool

logger = logging.getLogger(__name__)

LANDSCAPE = "landscape"
PORTRAIT = "portrait"
OTHER = "other"


def classify_aspect_ratio(width: int, height: int) -> str:
    """
    Map stream geometry to a coarse orientation bucket.

    The ratio is integer-truncated and compared with the truncated 16:9 and
    9:16 ratios (1 and 0), so the partition is:

        width/height in [0, 1)  -> portrait
        width/height in [1, 2)  -> landscape (square included)
        width/height >= 2       -> other
    """
    if height <= 0:
        raise ValueError("height must be positive")
    ratio = width // height
    if ratio == 16 // 9:
        return LANDSCAPE
    if ratio == 9 // 16:
        return PORTRAIT
    return OTHER


def _positive_int(value) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


class MediaProber:
    """Reads the first video stream's width/height via ffprobe."""

    def __init__(
        self,
        runner: ToolRunner = run_tool,
        ffprobe_bin: str = "ffprobe",
        timeout: Optional[float] = None,
    ):
        self.runner = runner
        self.ffprobe_bin = ffprobe_bin
        self.timeout = timeout

    def build_args(self, path: Union[str, Path]) -> list:
        return [
            self.ffprobe_bin,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height",
            "-of", "json",
            str(path),
        ]

    def probe_dimensions(self, path: Union[str, Path]) -> Tuple[int, int]:
        result = self.runner(self.build_args(path), self.timeout)
        if not result.ok:
            raise ProbeFailure(f"ffprobe failed: {result.stderr.strip()}")

        try:
            payload = json.loads(result.stdout or "")
        except json.JSONDecodeError as exc:
            raise ProbeFailure("ffprobe returned invalid JSON") from exc

        streams = payload.get("streams") if isinstance(payload, dict) else None
        stream = streams[0] if isinstance(streams, list) and streams else {}
        width = _positive_int(stream.get("width")) if isinstance(stream, dict) else None
        height = _positive_int(stream.get("height")) if isinstance(stream, dict) else None
        if width is None or height is None:
            raise ProbeFailure("Could not read video dimensions")
        return width, height

    def get_aspect_ratio(self, path: Union[str, Path]) -> str:
        width, height = self.probe_dimensions(path)
        aspect = classify_aspect_ratio(width, height)
        logger.info("Probed %s: %sx%s -> %s", path, width, height, aspect)
        return aspect
