"""
Transcode execution pipeline.

Clipmill uses FFmpeg as its sole execution engine: one request, one working
set, one or more ffmpeg invocations, bytes back to the caller.
"""

from .errors import (
    ExecutionError,
    ClipValidationError,
    StagingError,
    TranscodeError,
    ReadbackError,
    CleanupError,
)
from .profiles import (
    Resolution,
    ResolutionProfile,
    RESOLUTION_PROFILES,
    DEFAULT_RESOLUTION,
    resolve_profile,
)
from .models import (
    UploadedClip,
    TranscodeRequest,
    Invocation,
    TranscodePlan,
    OutroStrategy,
)
from .results import TranscodeResult
from .workspace import RequestToken, WorkingSet, new_request_token
from .commands import plan_transcode, command_as_string
from .ffmpeg import FFmpegExecutor, find_ffmpeg
from .runner import TranscodeJobRunner

__all__ = [
    # Errors
    "ExecutionError",
    "ClipValidationError",
    "StagingError",
    "TranscodeError",
    "ReadbackError",
    "CleanupError",
    # Profiles
    "Resolution",
    "ResolutionProfile",
    "RESOLUTION_PROFILES",
    "DEFAULT_RESOLUTION",
    "resolve_profile",
    # Models
    "UploadedClip",
    "TranscodeRequest",
    "Invocation",
    "TranscodePlan",
    "OutroStrategy",
    "TranscodeResult",
    # Working set
    "RequestToken",
    "WorkingSet",
    "new_request_token",
    # Command builder / executor / runner
    "plan_transcode",
    "command_as_string",
    "FFmpegExecutor",
    "find_ffmpeg",
    "TranscodeJobRunner",
]
