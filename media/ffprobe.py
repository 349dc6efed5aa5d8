"""Wrapper utilities for retrieving media information using ffprobe."""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass

PROBE_TIMEOUT_SECONDS = 15


@dataclass(frozen=True)
class AudioStreamInfo:
    codec_name: str
    sample_rate: int | None
    duration: float | None


def _optional_number(value, cast):
    if value in (None, "", "N/A"):
        return None
    try:
        return cast(value)
    except (TypeError, ValueError):
        return None


def probe_audio_stream(file_path: str, *, timeout: float = PROBE_TIMEOUT_SECONDS) -> AudioStreamInfo:
    """Describe the first audio stream of ``file_path``.

    Raises:
        RuntimeError: If ``ffprobe`` is missing, times out or exits non-zero.
        ValueError: If the output is unparseable or holds no audio stream.
    """
    command = [
        "ffprobe",
        "-v",
        "error",
        "-select_streams",
        "a:0",
        "-show_entries",
        "stream=codec_name,sample_rate:format=duration",
        "-of",
        "json",
        file_path,
    ]
    try:
        completed = subprocess.run(command, capture_output=True, text=True, check=True, timeout=timeout)
    except FileNotFoundError as exc:
        raise RuntimeError("ffprobe is not installed or not available in PATH") from exc
    except subprocess.TimeoutExpired as exc:
        raise RuntimeError(f"ffprobe timed out after {timeout}s on {file_path}") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
        raise RuntimeError(f"ffprobe could not read {file_path}: {detail}") from exc

    try:
        payload = json.loads(completed.stdout or "{}")
    except json.JSONDecodeError as exc:
        raise ValueError(f"unparseable ffprobe output for {file_path}") from exc

    streams = payload.get("streams") or []
    stream = streams[0] if streams else None
    codec_name = str((stream or {}).get("codec_name") or "").strip().lower()
    if not codec_name:
        raise ValueError(f"no audio stream in {file_path}")
    return AudioStreamInfo(
        codec_name=codec_name,
        sample_rate=_optional_number(stream.get("sample_rate"), int),
        duration=_optional_number((payload.get("format") or {}).get("duration"), float),
    )


def probe_audio_codec(file_path: str) -> str:
    """Return the lowercase codec name of the first audio stream."""
    return probe_audio_stream(file_path).codec_name
