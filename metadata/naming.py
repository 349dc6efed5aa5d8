"""Output naming helpers used by the salvage pipeline."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Any

from config.settings import OUTPUT_VARIANT_AAC, OUTPUT_VARIANTS, PLACEHOLDER_TITLE

_INVALID_FS_CHARS_RE = re.compile(r'[/\\?%*:|"<>]')

TEMP_MARKER = ".temp"
ARTWORK_EXT = "jpg"

_NAME_MAX_BYTES = 255
# Room for the longest suffix a stem receives: ".temp" plus the extension.
_LONGEST_EXT = max(len(ext) for ext in OUTPUT_VARIANTS + (ARTWORK_EXT,))
MAX_STEM_BYTES = _NAME_MAX_BYTES - len(TEMP_MARKER) - 1 - _LONGEST_EXT


def _truncate_utf8(text: str, max_bytes: int) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", "ignore")


def _ends_with_temp_marker(stem: str) -> bool:
    return stem.lower().endswith(TEMP_MARKER)


def sanitize_filename(title: Any) -> str:
    """Return ``title`` with filesystem-unsafe characters replaced by ``-``.

    Absent or empty titles map to a fixed placeholder, so the result is never
    empty. The result is cut to ``MAX_STEM_BYTES`` of UTF-8 and never ends in
    ``.temp``, so no final name can equal a temporary one. Distinct titles may
    map to the same stem.
    """
    text = "" if title is None else str(title)
    if not text:
        text = PLACEHOLDER_TITLE
    stem = _truncate_utf8(_INVALID_FS_CHARS_RE.sub("-", text), MAX_STEM_BYTES)
    if _ends_with_temp_marker(stem):
        stem = f"{stem[: -len(TEMP_MARKER)]}-{stem[-len(TEMP_MARKER) + 1:]}"
    return stem


@dataclass(frozen=True)
class OutputPaths:
    final_path: str
    temporary_path: str
    artwork_path: str


def output_extension(variant: str) -> str:
    value = str(variant or OUTPUT_VARIANT_AAC).strip().lower()
    if value not in OUTPUT_VARIANTS:
        raise ValueError(f"unsupported output variant: {variant}")
    return value


def build_output_paths(staging_dir: str, stem: str, variant: str = OUTPUT_VARIANT_AAC) -> OutputPaths:
    """Build final, temporary and artwork paths for one sanitized stem."""
    ext = output_extension(variant)
    if _ends_with_temp_marker(stem):
        raise ValueError(f"stem would shadow a temporary name: {stem}")
    return OutputPaths(
        final_path=os.path.join(staging_dir, f"{stem}.{ext}"),
        temporary_path=os.path.join(staging_dir, f"{stem}{TEMP_MARKER}.{ext}"),
        artwork_path=os.path.join(staging_dir, f"{stem}{TEMP_MARKER}.{ARTWORK_EXT}"),
    )
