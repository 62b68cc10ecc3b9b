"""
Execution-specific errors.

All errors are scoped to a single request.
They indicate that one upload could not be processed; the service keeps running
and the client decides whether to re-submit.

Mapping at the HTTP boundary:
- ClipValidationError -> 400
- every other ExecutionError -> 500
- CleanupError is never raised to the caller, only logged
"""

from typing import Optional


class ExecutionError(Exception):
    """
    Base exception for request execution failures.

    All execution errors inherit from this.
    """

    http_status: int = 500

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(message)


class ClipValidationError(ExecutionError):
    """
    Request validation failed.

    Raised before the filesystem or any subprocess is touched:
    - Primary clip missing
    - Primary clip empty
    """

    http_status = 400


class StagingError(ExecutionError):
    """
    Staging failed.

    Raised when uploaded bytes cannot be materialized:
    - Working directory cannot be created
    - Upload cannot be written to disk
    - Concat manifest cannot be written
    """

    pass


class TranscodeError(ExecutionError):
    """
    FFmpeg execution failed.

    Raised when the external transcoder cannot produce its output:
    - Non-zero exit code
    - Binary could not be spawned
    - Timeout exceeded
    """

    def __init__(
        self,
        message: str = "",
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
        label: Optional[str] = None,
    ):
        self.exit_code = exit_code
        self.stderr = stderr
        self.label = label
        super().__init__(message)


class ReadbackError(ExecutionError):
    """
    Output readback failed.

    Raised when ffmpeg appears to succeed but the output is unusable:
    - Output file missing
    - Output file zero bytes
    - Output file unreadable
    """

    pass


class CleanupError(ExecutionError):
    """Deletion of a temporary artifact failed. Logged, never surfaced."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to delete {path}: {reason}")
