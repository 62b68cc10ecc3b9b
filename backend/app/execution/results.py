"""
Transcode result model.

Structured representation of one successful request.
Failures are not results: they surface as ExecutionError subclasses.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import OutroStrategy
from .profiles import Resolution


class TranscodeResult(BaseModel):
    """
    Result of one processed request.

    content is the full output file; it is never written back to disk
    after readback.
    """

    model_config = ConfigDict(extra="forbid")

    content: bytes
    """Processed video bytes."""

    filename: str
    """Suggested download filename."""

    media_type: str = "video/mp4"

    token: str
    """Request token the working set was namespaced by."""

    resolution: Resolution
    width: int
    height: int
    mirrored: bool = False
    has_outro: bool = False
    strategy: Optional[OutroStrategy] = None
    """Outro strategy used (None when there was no outro)."""

    invocation_count: int = 1

    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def size(self) -> int:
        return len(self.content)

    def duration_seconds(self) -> Optional[float]:
        """Calculate processing duration in seconds."""
        if self.completed_at is None:
            return None
        delta = self.completed_at - self.started_at
        return delta.total_seconds()

    def summary(self) -> str:
        """Human-readable summary of the result."""
        duration_str = ""
        duration = self.duration_seconds()
        if duration is not None:
            duration_str = f" ({duration:.1f}s)"

        extras = []
        if self.mirrored:
            extras.append("mirrored")
        if self.has_outro:
            extras.append(f"outro:{self.strategy.value if self.strategy else 'unknown'}")
        extras_str = f" [{', '.join(extras)}]" if extras else ""

        return (
            f"SUCCESS{duration_str}: {self.filename} "
            f"{self.width}x{self.height}{extras_str}, {self.size} bytes"
        )
