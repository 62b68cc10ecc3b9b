"""
FFmpeg command construction.

Pure functions: options + paths in, Invocation (argv) out. Nothing here
touches the filesystem or spawns a process, so the exact command can be
logged, pasted into a terminal, or asserted on in tests.

Invocation shapes:

1. No outro, not mirrored
       -i input -vf scale=W:H,setsar=1 <encode> output
2. No outro, mirrored
       -i input -vf hflip,scale=W:H,setsar=1 <encode> output
3a. Outro, single-pass filter graph
       -i input -i outro -filter_complex
         [0:v]<chain>[v0];[1:v]scale=W:H,setsar=1[v1];
         [v0][0:a][v1][1:a]concat=n=2:v=1:a=1[outv][outa]
       -map [outv] -map [outa] <encode> output
3b. Outro, two-pass normalize-then-concat (default)
       -i input -vf <chain> -r 30 <encode> -ar 48000 -ac 2 primary_norm
       -i outro -vf scale=W:H,setsar=1 -r 30 <encode> -ar 48000 -ac 2 outro_norm
       -f concat -safe 0 -i manifest -c copy output

Only the primary clip is ever flipped. The outro plays as supplied.
"""

import shlex
from pathlib import Path
from typing import Iterable, List, Optional

from .models import Invocation, OutroStrategy, TranscodePlan, TranscodeRequest
from .profiles import ResolutionProfile, resolve_profile
from .workspace import WorkingSet


# Encode settings shared by every re-encoding invocation
VIDEO_CODEC = "libx264"
VIDEO_PRESET = "medium"
VIDEO_CRF = 23
PIXEL_FORMAT = "yuv420p"
AUDIO_CODEC = "aac"
AUDIO_BITRATE = "128k"

# Pinned for two-pass intermediates so the concat demuxer can stream-copy
NORMALIZED_FRAME_RATE = 30
NORMALIZED_SAMPLE_RATE = 48000
NORMALIZED_CHANNELS = 2

INTERMEDIATE_EXTENSION = ".mp4"
MANIFEST_EXTENSION = ".txt"
OUTPUT_EXTENSION = ".mp4"

DEFAULT_FFMPEG = "ffmpeg"


def _base_args() -> List[str]:
    return ["-y", "-hide_banner"]


def _encode_args() -> List[str]:
    return [
        "-c:v", VIDEO_CODEC,
        "-preset", VIDEO_PRESET,
        "-crf", str(VIDEO_CRF),
        "-pix_fmt", PIXEL_FORMAT,
        "-c:a", AUDIO_CODEC,
        "-b:a", AUDIO_BITRATE,
    ]


def _web_output_args() -> List[str]:
    # moov atom up front so browsers can start playback before full download
    return ["-movflags", "+faststart"]


def video_filter_chain(profile: ResolutionProfile, mirrored: bool) -> str:
    """
    Per-clip video filter chain.

    hflip (when mirrored) always precedes scale. setsar=1 keeps the sample
    aspect ratio identical across clips so concat never rejects a segment.
    """
    filters = []
    if mirrored:
        filters.append("hflip")
    filters.append(f"scale={profile.scale_expr}")
    filters.append("setsar=1")
    return ",".join(filters)


def build_single_output(
    input_path: Path,
    output_path: Path,
    profile: ResolutionProfile,
    mirrored: bool,
    ffmpeg: str = DEFAULT_FFMPEG,
) -> Invocation:
    """Shapes 1 and 2: one input, one output."""
    args = [
        *_base_args(),
        "-i", str(input_path),
        "-vf", video_filter_chain(profile, mirrored),
        *_encode_args(),
        *_web_output_args(),
        str(output_path),
    ]
    return Invocation(executable=ffmpeg, args=tuple(args), label="transcode")


def build_concat_filter_graph(profile: ResolutionProfile, mirrored: bool) -> str:
    """
    Filter graph for shape 3a.

    Labels: [v0],[v1] scaled video; [outv],[outa] merged output pair.
    Audio is taken straight from [0:a] and [1:a] in primary-then-outro order.
    """
    primary_chain = video_filter_chain(profile, mirrored)
    outro_chain = video_filter_chain(profile, mirrored=False)
    return (
        f"[0:v]{primary_chain}[v0];"
        f"[1:v]{outro_chain}[v1];"
        f"[v0][0:a][v1][1:a]concat=n=2:v=1:a=1[outv][outa]"
    )


def build_filter_graph_concat(
    input_path: Path,
    outro_path: Path,
    output_path: Path,
    profile: ResolutionProfile,
    mirrored: bool,
    ffmpeg: str = DEFAULT_FFMPEG,
) -> Invocation:
    """Shape 3a: both clips in one invocation."""
    args = [
        *_base_args(),
        "-i", str(input_path),
        "-i", str(outro_path),
        "-filter_complex", build_concat_filter_graph(profile, mirrored),
        "-map", "[outv]",
        "-map", "[outa]",
        *_encode_args(),
        *_web_output_args(),
        str(output_path),
    ]
    return Invocation(executable=ffmpeg, args=tuple(args), label="concat_filter_graph")


def build_normalize(
    input_path: Path,
    output_path: Path,
    profile: ResolutionProfile,
    mirrored: bool,
    ffmpeg: str = DEFAULT_FFMPEG,
    label: str = "normalize",
) -> Invocation:
    """
    One pass of shape 3b.

    Frame rate, sample rate and channel layout are pinned explicitly; source
    outro clips routinely differ from the primary in all three.
    """
    args = [
        *_base_args(),
        "-i", str(input_path),
        "-map", "0:v:0",
        "-map", "0:a:0",
        "-vf", video_filter_chain(profile, mirrored),
        "-r", str(NORMALIZED_FRAME_RATE),
        *_encode_args(),
        "-ar", str(NORMALIZED_SAMPLE_RATE),
        "-ac", str(NORMALIZED_CHANNELS),
        str(output_path),
    ]
    return Invocation(executable=ffmpeg, args=tuple(args), label=label)


def _escape_manifest_path(path: Path) -> str:
    # concat demuxer quoting: close quote, escaped quote, reopen
    return str(path).replace("'", "'\\''")


def build_manifest(segments: Iterable[Path]) -> str:
    """Concat-demuxer manifest: one file '<path>' line per segment, in order."""
    lines = [f"file '{_escape_manifest_path(Path(p))}'" for p in segments]
    return "\n".join(lines) + "\n"


def build_manifest_concat(
    manifest_path: Path,
    output_path: Path,
    ffmpeg: str = DEFAULT_FFMPEG,
) -> Invocation:
    """Final pass of shape 3b: stream-copy concat driven by the manifest."""
    args = [
        *_base_args(),
        "-f", "concat",
        "-safe", "0",
        "-i", str(manifest_path),
        "-c", "copy",
        *_web_output_args(),
        str(output_path),
    ]
    return Invocation(executable=ffmpeg, args=tuple(args), label="concat_manifest")


def plan_transcode(
    request: TranscodeRequest,
    working_set: WorkingSet,
    input_path: Path,
    outro_path: Optional[Path] = None,
    ffmpeg: str = DEFAULT_FFMPEG,
    strategy: OutroStrategy = OutroStrategy.TWO_PASS,
) -> TranscodePlan:
    """
    Choose the invocation shape for a request.

    Paths are derived from the working set's token but NOT registered; the
    runner registers every path in the returned plan before executing it.

    Args:
        request: Validated transcode options
        working_set: Supplies the request-token path namespace
        input_path: Staged primary clip
        outro_path: Staged outro clip, or None
        ffmpeg: Executable to invoke
        strategy: Outro strategy; ignored when there is no outro

    Returns:
        TranscodePlan with one invocation (no outro, or filter graph) or
        three (two-pass).
    """
    if input_path is None:
        raise ValueError("plan_transcode requires a staged input path")

    profile = resolve_profile(request.resolution)
    output_path = working_set.name_for("output", OUTPUT_EXTENSION)

    if outro_path is None:
        invocation = build_single_output(
            input_path, output_path, profile, request.mirrored, ffmpeg=ffmpeg
        )
        return TranscodePlan(invocations=(invocation,), output_path=output_path)

    if strategy == OutroStrategy.FILTER_GRAPH:
        invocation = build_filter_graph_concat(
            input_path, outro_path, output_path, profile, request.mirrored, ffmpeg=ffmpeg
        )
        return TranscodePlan(
            invocations=(invocation,),
            output_path=output_path,
            strategy=strategy,
        )

    primary_norm = working_set.name_for("primary_norm", INTERMEDIATE_EXTENSION)
    outro_norm = working_set.name_for("outro_norm", INTERMEDIATE_EXTENSION)
    manifest_path = working_set.name_for("concat", MANIFEST_EXTENSION)

    invocations = (
        build_normalize(
            input_path, primary_norm, profile, request.mirrored,
            ffmpeg=ffmpeg, label="normalize_primary",
        ),
        build_normalize(
            outro_path, outro_norm, profile, mirrored=False,
            ffmpeg=ffmpeg, label="normalize_outro",
        ),
        build_manifest_concat(manifest_path, output_path, ffmpeg=ffmpeg),
    )
    return TranscodePlan(
        invocations=invocations,
        output_path=output_path,
        strategy=OutroStrategy.TWO_PASS,
        manifest_path=manifest_path,
        manifest_text=build_manifest([primary_norm, outro_norm]),
        intermediate_paths=(primary_norm, outro_norm),
    )


def command_as_string(invocation: Invocation) -> str:
    """Shell-quoted version of the command for logging."""
    return shlex.join(invocation.argv)
