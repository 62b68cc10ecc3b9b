"""
Single-request transcode pipeline.

This module owns the end-to-end lifecycle of one upload:
1. Validation (primary clip present) - before ANY filesystem activity
2. Staging (uploads written into a token-namespaced working set)
3. Planning (command builder picks the invocation shape)
4. Execution (one subprocess per invocation, in order)
5. Readback (output read fully into memory)
6. Release (every staged, intermediate and output file deleted)

Release runs on every exit path, and only after readback on the success path.
No retries: a failed request is reported and the client re-submits.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Protocol, Tuple

from .commands import DEFAULT_FFMPEG, plan_transcode
from .errors import ClipValidationError
from .ffmpeg import FFmpegExecutor, find_ffmpeg
from .models import Invocation, TranscodePlan, TranscodeRequest
from .naming import OUTPUT_MEDIA_TYPE, download_filename, upload_suffix
from .profiles import resolve_profile
from .results import TranscodeResult
from .workspace import WorkingSet, new_request_token

if TYPE_CHECKING:
    from ..config import ServiceSettings

logger = logging.getLogger(__name__)


class InvocationExecutor(Protocol):
    """Anything that can run an Invocation to completion or raise TranscodeError."""

    def run(self, invocation: Invocation) -> None:
        ...


class TranscodeJobRunner:
    """
    Runs transcode requests.

    Holds no per-request state: every request gets its own token and working
    set, so one runner serves concurrent requests.
    """

    def __init__(
        self,
        settings: "ServiceSettings",
        executor: Optional[InvocationExecutor] = None,
    ):
        self.settings = settings
        self.executor = executor or FFmpegExecutor(timeout=settings.ffmpeg_timeout)

    @property
    def ffmpeg_path(self) -> str:
        """Configured ffmpeg, else discovered, else bare name (spawn fails loudly)."""
        return self.settings.ffmpeg_path or find_ffmpeg() or DEFAULT_FFMPEG

    def run(self, request: TranscodeRequest) -> TranscodeResult:
        """
        Process one request.

        Raises:
            ClipValidationError: primary clip missing or empty
            StagingError: working directory or upload write failed
            TranscodeError: ffmpeg failed to start or exited non-zero
            ReadbackError: output missing, empty or unreadable
        """
        if request.primary is None or request.primary.is_empty:
            raise ClipValidationError("No video file provided")

        started_at = datetime.now()
        token = new_request_token()
        profile = resolve_profile(request.resolution)

        logger.info(
            f"[Runner] Request {token}: {request.primary.filename or '<unnamed>'} "
            f"({request.primary.content_type or 'unknown type'}, {request.primary.size} bytes) "
            f"-> {profile.resolution.value} {profile.size}, "
            f"mirrored={request.mirrored}, outro={request.has_outro}"
        )

        working_set = WorkingSet(self.settings.work_dir, token)
        try:
            with working_set:
                content, plan = self._execute(request, working_set)
        finally:
            self._report_leftovers(working_set)

        result = TranscodeResult(
            content=content,
            filename=download_filename(
                request.primary.filename, profile.resolution, token.timestamp_ms
            ),
            media_type=OUTPUT_MEDIA_TYPE,
            token=str(token),
            resolution=profile.resolution,
            width=profile.width,
            height=profile.height,
            mirrored=request.mirrored,
            has_outro=request.has_outro,
            strategy=plan.strategy,
            invocation_count=len(plan.invocations),
            started_at=started_at,
            completed_at=datetime.now(),
        )
        logger.info(f"[Runner] Request {token}: {result.summary()}")
        return result

    def _execute(
        self, request: TranscodeRequest, working_set: WorkingSet
    ) -> Tuple[bytes, TranscodePlan]:
        """Stage, plan, execute and read back inside an open working set."""
        input_path = working_set.stage_bytes(
            "input", upload_suffix(request.primary.filename), request.primary.data
        )

        outro_path = None
        if request.has_outro:
            outro_path = working_set.stage_bytes(
                "outro", upload_suffix(request.outro.filename), request.outro.data
            )

        plan = plan_transcode(
            request,
            working_set,
            input_path,
            outro_path,
            ffmpeg=self.ffmpeg_path,
            strategy=self.settings.outro_strategy,
        )

        for path in plan.intermediate_paths:
            working_set.register(path)
        working_set.register(plan.output_path)
        if plan.manifest_path is not None:
            working_set.stage_text(plan.manifest_path, plan.manifest_text or "")

        logger.debug(
            f"[Runner] Request {working_set.token}: {len(working_set.paths)} path(s) registered, "
            f"{len(plan.invocations)} invocation(s) planned"
        )

        for invocation in plan.invocations:
            self.executor.run(invocation)

        return working_set.read_output(plan.output_path), plan

    def _report_leftovers(self, working_set: WorkingSet) -> None:
        """Warn about token-carrying files still on disk after release."""
        leftovers = working_set.leftovers()
        if leftovers:
            names = ", ".join(sorted(p.name for p in leftovers))
            logger.warning(
                f"[Runner] Request {working_set.token}: {len(leftovers)} artifact(s) "
                f"left in {working_set.root}: {names}"
            )
