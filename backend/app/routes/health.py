"""
Health endpoint.

Reports whether the service can actually transcode, i.e. whether an ffmpeg
binary is resolvable. Does not spawn ffmpeg.
"""

import shutil
from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: str
    ffmpeg_available: bool
    ffmpeg_path: Optional[str] = None


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    runner = request.app.state.job_runner
    resolved = shutil.which(runner.ffmpeg_path)
    return HealthResponse(
        status="ok" if resolved else "degraded",
        ffmpeg_available=resolved is not None,
        ffmpeg_path=resolved,
    )
