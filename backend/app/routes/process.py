"""
Video processing endpoints.

============================================================================
ENDPOINTS
============================================================================
POST /api/process-video  — Transcode one uploaded clip (+ optional outro)
GET  /api/resolutions    — Selectable resolution profiles

Multipart fields for /api/process-video:
- video       (file, required)   primary clip
- outroVideo  (file, optional)   appended after the primary clip
- resolution  (str, optional)    "720p" | "1080p" | "4K", anything else -> 1080p
- mirrored    (str, optional)    "true" -> mirrored, anything else -> not

This route is the single error boundary for a request:
- ClipValidationError -> 400
- anything else       -> 500 "Failed to process video: <message>"
============================================================================
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict

from app.execution.errors import ClipValidationError, ExecutionError
from app.execution.models import TranscodeRequest, UploadedClip
from app.execution.profiles import DEFAULT_RESOLUTION, RESOLUTION_PROFILES
from app.execution.runner import TranscodeJobRunner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["process"])


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class ResolutionProfileResponse(BaseModel):
    """One selectable resolution."""

    model_config = ConfigDict(extra="forbid")

    name: str
    width: int
    height: int


class ResolutionListResponse(BaseModel):
    """Response for resolution listing."""

    model_config = ConfigDict(extra="forbid")

    default: str
    profiles: List[ResolutionProfileResponse]


# ============================================================================
# HELPERS
# ============================================================================

def _read_upload(upload: Optional[UploadFile]) -> Optional[UploadedClip]:
    """Read an upload into memory. Missing or empty parts count as absent."""
    if upload is None:
        return None
    data = upload.file.read()
    if not data:
        return None
    return UploadedClip(
        filename=upload.filename or "",
        data=data,
        content_type=upload.content_type,
    )


def _parse_mirrored(value: Optional[str]) -> bool:
    return value == "true"


def _get_runner(request: Request) -> TranscodeJobRunner:
    return request.app.state.job_runner


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/process-video")
def process_video(
    request: Request,
    video: Optional[UploadFile] = File(None),
    outroVideo: Optional[UploadFile] = File(None),
    resolution: Optional[str] = Form(None),
    mirrored: Optional[str] = Form(None),
):
    """
    Transcode an uploaded video and return the processed file.

    Declared as a sync endpoint: FastAPI runs it in its threadpool, so the
    blocking ffmpeg call never stalls the event loop and concurrent uploads
    are processed side by side.

    Returns:
        video/mp4 body with Content-Disposition attachment filename.
    """
    try:
        transcode_request = TranscodeRequest(
            primary=_read_upload(video),
            outro=_read_upload(outroVideo),
            resolution=resolution,
            mirrored=_parse_mirrored(mirrored),
        )
        result = _get_runner(request).run(transcode_request)

    except ClipValidationError as e:
        raise HTTPException(status_code=400, detail=e.message or "No video file provided")
    except ExecutionError as e:
        logger.error(f"Error processing video: {type(e).__name__}: {e.message}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process video: {e.message or 'Unknown error'}",
        )
    except Exception as e:
        logger.exception(f"Unexpected error processing video: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process video: {str(e) or 'Unknown error'}",
        )

    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Clipmill-Token": result.token,
            "X-Clipmill-Resolution": f"{result.width}x{result.height}",
        },
    )


@router.get("/resolutions", response_model=ResolutionListResponse)
async def list_resolutions() -> ResolutionListResponse:
    """List the fixed resolution profiles, in tier order."""
    return ResolutionListResponse(
        default=DEFAULT_RESOLUTION.value,
        profiles=[
            ResolutionProfileResponse(
                name=profile.resolution.value,
                width=profile.width,
                height=profile.height,
            )
            for profile in RESOLUTION_PROFILES.values()
        ],
    )
