"""Checks run on a transcoded file before it replaces anything in staging."""

from __future__ import annotations

import logging
import os

from config.settings import AUDIO_CODEC
from media.ffprobe import probe_audio_stream

logger = logging.getLogger(__name__)


def validate_transcoded_output(file_path: str, expected_codec: str = AUDIO_CODEC) -> bool:
    """Return ``True`` when ``file_path`` is a non-empty file whose first audio
    stream is ``expected_codec``.

    A reported duration of zero fails validation; a missing duration does not,
    since raw ADTS streams often carry none. Probe errors return ``False``.
    """
    try:
        size = os.path.getsize(file_path)
    except OSError:
        logger.warning("Output validation failed: missing file path=%s", file_path)
        return False
    if size <= 0:
        logger.warning("Output validation failed: empty file path=%s", file_path)
        return False

    try:
        info = probe_audio_stream(file_path)
    except (RuntimeError, ValueError) as exc:
        logger.warning("Output validation failed: probe error path=%s error=%s", file_path, exc)
        return False

    if info.codec_name != expected_codec:
        logger.warning(
            "Output validation failed: codec=%s expected=%s path=%s", info.codec_name, expected_codec, file_path
        )
        return False
    if info.duration is not None and info.duration <= 0:
        logger.warning("Output validation failed: zero duration path=%s", file_path)
        return False
    return True
