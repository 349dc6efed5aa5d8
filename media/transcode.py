"""ffmpeg transcode jobs for staged cache segments."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass

from config.settings import (
    AUDIO_BITRATE,
    AUDIO_CODEC,
    OUTPUT_VARIANT_AAC,
    OUTPUT_VARIANT_M4A,
    TRANSCODE_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 800

# Output muxer per variant; .m4a uses the plain mp4 muxer so cover art can ride along.
_MUXERS = {
    OUTPUT_VARIANT_AAC: "adts",
    OUTPUT_VARIANT_M4A: "mp4",
}


class TranscodeError(Exception):
    """Raised when ffmpeg cannot produce the requested output."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


@dataclass
class TranscodeJob:
    input_path: str
    final_output_path: str
    temporary_output_path: str
    variant: str = OUTPUT_VARIANT_AAC
    artwork_path: str | None = None
    tags: dict[str, str] | None = None
    codec: str = AUDIO_CODEC
    bitrate: int = AUDIO_BITRATE

    @property
    def embeds_artwork_in_stream(self) -> bool:
        """True when the encode pass itself carries the picture stream."""
        return bool(self.artwork_path) and self.variant == OUTPUT_VARIANT_M4A


def _format_bitrate(bitrate: int) -> str:
    if bitrate % 1000 == 0:
        return f"{bitrate // 1000}k"
    return str(bitrate)


def _metadata_args(tags: dict[str, str] | None) -> list[str]:
    args: list[str] = []
    for key in ("title", "artist", "album"):
        value = (tags or {}).get(key)
        if value:
            args.extend(["-metadata", f"{key}={value}"])
    return args


def build_transcode_command(job: TranscodeJob) -> list[str]:
    """Build the ffmpeg argv for ``job``.

    ADTS cannot hold a picture stream, so artwork is only mapped for the M4A
    variant; tags are written in the same pass for both.
    """
    muxer = _MUXERS.get(job.variant)
    if muxer is None:
        raise ValueError(f"unsupported output variant: {job.variant}")

    cmd: list[str] = ["ffmpeg", "-y", "-hide_banner", "-nostdin", "-i", job.input_path]
    if job.embeds_artwork_in_stream:
        cmd.extend(["-i", job.artwork_path])
    cmd.extend(["-map", "0:a:0"])
    if job.embeds_artwork_in_stream:
        cmd.extend(["-map", "1:v:0", "-c:v", "mjpeg", "-disposition:v:0", "attached_pic"])
    else:
        cmd.append("-vn")
    cmd.extend(["-c:a", job.codec, "-b:a", _format_bitrate(job.bitrate)])
    if job.tags:
        cmd.extend(_metadata_args(job.tags))
        if muxer == "adts":
            cmd.extend(["-write_id3v2", "1"])
    cmd.extend(["-f", muxer, job.temporary_output_path])
    return cmd


def _stderr_tail(text: str | None) -> str:
    text = (text or "").strip()
    if len(text) > _STDERR_TAIL_CHARS:
        return text[-_STDERR_TAIL_CHARS:]
    return text


def run_transcode(job: TranscodeJob, *, timeout: float = TRANSCODE_TIMEOUT_SECONDS) -> None:
    """Run ffmpeg for ``job`` and block until it finishes.

    Raises:
        TranscodeError: On missing ffmpeg, timeout, non-zero exit, or no output.
    """
    cmd = build_transcode_command(job)
    logger.info("Converting %s to %s", job.input_path, job.temporary_output_path)
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise TranscodeError("ffmpeg is not installed or not available in PATH") from exc
    except subprocess.TimeoutExpired as exc:
        raise TranscodeError(f"ffmpeg timed out after {timeout}s converting {job.input_path}") from exc

    if proc.returncode != 0:
        err = _stderr_tail(proc.stderr)
        raise TranscodeError(
            f"ffmpeg failed converting {job.input_path} (rc={proc.returncode})" + (f": {err}" if err else ""),
            returncode=proc.returncode,
            stderr=err,
        )
    if not os.path.isfile(job.temporary_output_path):
        raise TranscodeError(f"ffmpeg reported success but wrote no output: {job.temporary_output_path}")
    logger.info("Conversion finished: %s", job.temporary_output_path)
