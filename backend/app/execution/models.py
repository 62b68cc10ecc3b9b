"""
Request-scoped execution models.

Nothing here outlives a single request:
- UploadedClip / TranscodeRequest are built at ingress and consumed immediately
- Invocation / TranscodePlan are built, executed once, and discarded
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from .profiles import Resolution, DEFAULT_RESOLUTION


class OutroStrategy(str, Enum):
    """
    How an outro clip is appended.

    TWO_PASS: normalize each clip to an intermediate, then concat by manifest
              with stream copy. Robust to mismatched source frame rates.
    FILTER_GRAPH: one ffmpeg call, scale + concat inside -filter_complex.
    """

    TWO_PASS = "two_pass"
    FILTER_GRAPH = "filter_graph"


class UploadedClip(BaseModel):
    """One uploaded video: declared name plus raw bytes."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    filename: str = ""
    data: bytes = b""
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_empty(self) -> bool:
        return not self.data


class TranscodeRequest(BaseModel):
    """
    Options for one transcode.

    primary is Optional only so the runner can reject its absence explicitly;
    a request without a primary clip never reaches the filesystem.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    primary: Optional[UploadedClip] = None
    outro: Optional[UploadedClip] = None
    resolution: Resolution = DEFAULT_RESOLUTION
    mirrored: bool = False

    @field_validator("resolution", mode="before")
    @classmethod
    def _fallback_resolution(cls, value):
        return Resolution.parse(value)

    @property
    def has_outro(self) -> bool:
        return self.outro is not None and not self.outro.is_empty


@dataclass(frozen=True)
class Invocation:
    """Fully-formed external command: executable plus ordered arguments."""

    executable: str
    args: Tuple[str, ...]
    label: str = "transcode"

    @property
    def argv(self) -> List[str]:
        return [self.executable, *self.args]

    @property
    def input_count(self) -> int:
        return sum(1 for arg in self.args if arg == "-i")


@dataclass(frozen=True)
class TranscodePlan:
    """
    Ordered invocations for one request.

    manifest_text is set only for the two-pass outro strategy; the runner
    writes it to manifest_path before executing the plan.
    """

    invocations: Tuple[Invocation, ...]
    output_path: Path
    strategy: Optional[OutroStrategy] = None
    manifest_path: Optional[Path] = None
    manifest_text: Optional[str] = None
    intermediate_paths: Tuple[Path, ...] = ()
