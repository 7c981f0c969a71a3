"""Fast-start remux: move the moov atom to the front without re-encoding."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import ffmpeg

from services.errors import RemuxFailure
from services.tool_runner import ToolRunner, run_tool

logger = logging.getLogger(__name__)

PROCESSED_SUFFIX = ".processed"


def processed_path_for(path: Union[str, Path]) -> str:
    """Output path for the rewritten copy of ``path``."""
    return f"{path}{PROCESSED_SUFFIX}"


class FastStartRewriter:
    def __init__(
        self,
        runner: ToolRunner = run_tool,
        ffmpeg_bin: str = "ffmpeg",
        timeout: Optional[float] = None,
    ):
        self.runner = runner
        self.ffmpeg_bin = ffmpeg_bin
        self.timeout = timeout

    def build_args(self, input_path: Union[str, Path], output_path: Union[str, Path]) -> list:
        # ffmpeg -i in -f mp4 -codec copy -map_metadata 0 -movflags faststart out -y
        return (
            ffmpeg
            .input(str(input_path))
            .output(
                str(output_path),
                format="mp4",
                codec="copy",
                map_metadata="0",
                movflags="faststart",
            )
            .overwrite_output()
            .compile(cmd=self.ffmpeg_bin)
        )

    def rewrite(self, input_path: Union[str, Path]) -> str:
        """Write a fast-start copy next to ``input_path`` and return its path."""
        output_path = processed_path_for(input_path)
        result = self.runner(self.build_args(input_path, output_path), self.timeout)
        if not result.ok:
            raise RemuxFailure(f"ffmpeg fast-start remux failed: {result.stderr.strip()}")
        logger.info("Fast-start copy written to %s", output_path)
        return output_path
