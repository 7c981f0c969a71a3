"""Blocking external-process invocation with captured output and a deadline."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from services.errors import ProcessingTimeout

logger = logging.getLogger(__name__)

MISSING_EXECUTABLE_EXIT_CODE = 127


@dataclass(frozen=True)
class ToolResult:
    args: List[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


ToolRunner = Callable[[Sequence[str], Optional[float]], ToolResult]


def run_tool(args: Sequence[str], timeout: Optional[float] = None) -> ToolResult:
    """
    Run an external tool to completion and capture stdout/stderr.

    The child is killed when ``timeout`` elapses and ``ProcessingTimeout``
    is raised. A missing executable is reported as exit code 127 with the
    OS error as stderr, so callers classify it like any other tool failure.
    """
    argv = [str(arg) for arg in args]
    try:
        completed = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        logger.warning("%s timed out after %ss", argv[0], timeout)
        raise ProcessingTimeout(f"{argv[0]} timed out after {timeout}s") from exc
    except FileNotFoundError as exc:
        return ToolResult(
            args=argv,
            returncode=MISSING_EXECUTABLE_EXIT_CODE,
            stdout="",
            stderr=str(exc),
        )

    return ToolResult(
        args=argv,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
