"""
FFmpeg executor.

Runs one Invocation as one child process.

Design rules:
- One subprocess per invocation, argv list only (never a shell string)
- Capture stdout + stderr; keep the stderr tail for diagnostics
- Log the full command string before running
- Non-zero exit code = TranscodeError
- Spawn failure (binary missing, not executable) = TranscodeError
- No progress parsing, no cancellation
"""

import logging
import os
import shutil
import subprocess
from typing import Optional

from .commands import command_as_string
from .errors import TranscodeError
from .models import Invocation

logger = logging.getLogger(__name__)


STDERR_TAIL_CHARS = 500

COMMON_FFMPEG_PATHS = [
    "/usr/local/bin/ffmpeg",
    "/usr/bin/ffmpeg",
    "/opt/homebrew/bin/ffmpeg",
]


def find_ffmpeg() -> Optional[str]:
    """Find ffmpeg binary path."""
    ffmpeg_path = shutil.which("ffmpeg")
    if ffmpeg_path:
        return ffmpeg_path

    for path in COMMON_FFMPEG_PATHS:
        if os.path.isfile(path) and os.access(path, os.X_OK):
            return path

    return None


def _stderr_tail(stderr: Optional[str]) -> str:
    if not stderr:
        return ""
    return stderr.strip()[-STDERR_TAIL_CHARS:]


class FFmpegExecutor:
    """
    Executes invocations with subprocess.Popen.

    Stateless apart from the optional timeout; safe to share across
    concurrent requests.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or None

    def run(self, invocation: Invocation) -> None:
        """
        Run an invocation to completion.

        Raises:
            TranscodeError: spawn failure, timeout, or non-zero exit
        """
        cmd = invocation.argv
        logger.info(f"[FFmpeg] Executing ({invocation.label}): {command_as_string(invocation)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as e:
            logger.error(f"[FFmpeg] Failed to start {invocation.executable}: {e}")
            raise TranscodeError(
                f"Failed to start ffmpeg: {e}",
                label=invocation.label,
            ) from e

        logger.info(f"[FFmpeg] Started PID {process.pid} ({invocation.label})")

        try:
            stdout, stderr = process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            logger.warning(f"[FFmpeg] PID {process.pid} exceeded {self.timeout}s, killing")
            process.kill()
            process.communicate()
            raise TranscodeError(
                f"ffmpeg timed out after {self.timeout}s",
                label=invocation.label,
            ) from e

        exit_code = process.returncode
        logger.info(f"[FFmpeg] PID {process.pid} exited with code {exit_code}")

        if exit_code != 0:
            tail = _stderr_tail(stderr)
            failure_reason = tail or f"FFmpeg exited with code {exit_code}"
            logger.error(f"[FFmpeg] Failed ({invocation.label}): {failure_reason}")
            raise TranscodeError(
                f"ffmpeg exited with code {exit_code}",
                exit_code=exit_code,
                stderr=tail,
                label=invocation.label,
            )
