"""
Filename helpers.

Upload names are user-controlled and never used verbatim on disk: staged
files are named by role + request token (see workspace.py), and only the
extension of the declared name survives, after sanitizing.

The suggested download name is derived from the declared name so the user
recognizes their file: {source_stem}_{resolution}_{timestamp_ms}.mp4
"""

import re
from pathlib import PurePosixPath, PureWindowsPath
from typing import Optional

from .profiles import Resolution


OUTPUT_EXTENSION = ".mp4"
OUTPUT_MEDIA_TYPE = "video/mp4"
DEFAULT_UPLOAD_EXTENSION = ".mp4"
DEFAULT_STEM = "video"

# Header-safe subset; anything else becomes "_"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_SUFFIX_PATTERN = re.compile(r"^\.[A-Za-z0-9]{1,8}$")


def _basename(name: str) -> str:
    # Browsers may send full client paths (old IE sent C:\...\clip.mov)
    return PureWindowsPath(PurePosixPath(name).name).name


def sanitize_filename(name: str, fallback: str = DEFAULT_STEM) -> str:
    """
    Sanitize a filename component.

    Replaces characters outside [A-Za-z0-9._-] with underscore so the result
    is safe both on disk and inside a Content-Disposition header.

    Args:
        name: Raw filename component
        fallback: Returned when nothing usable remains

    Returns:
        Sanitized, non-empty filename component
    """
    sanitized = _UNSAFE_CHARS.sub("_", name)
    sanitized = sanitized.strip("._ ")
    if not sanitized:
        sanitized = fallback
    return sanitized


def upload_suffix(filename: Optional[str]) -> str:
    """
    Extension to stage an upload with, including the leading dot.

    ffmpeg probes content rather than trusting extensions, but a plausible
    suffix helps demuxer selection for raw streams. Implausible suffixes
    fall back to .mp4.
    """
    if not filename:
        return DEFAULT_UPLOAD_EXTENSION
    suffix = PurePosixPath(_basename(filename)).suffix.lower()
    if _SUFFIX_PATTERN.match(suffix):
        return suffix
    return DEFAULT_UPLOAD_EXTENSION


def download_filename(
    source_name: Optional[str],
    resolution: Resolution,
    timestamp_ms: int,
) -> str:
    """
    Suggested filename for the processed video.

    Example:
        download_filename("My Clip.mov", Resolution.HD_720, 1760000000000)
        -> "My_Clip_720p_1760000000000.mp4"
    """
    stem = PurePosixPath(_basename(source_name or "")).stem
    stem = sanitize_filename(stem)
    return f"{stem}_{resolution.value}_{timestamp_ms}{OUTPUT_EXTENSION}"
