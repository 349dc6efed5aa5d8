"""Application settings constants."""

from __future__ import annotations

import os

# Target audio encoding for every salvaged segment.
AUDIO_CODEC = "aac"
AUDIO_BITRATE = 128_000

# Output variants: raw ADTS stream (.aac) or an MP4 audio container (.m4a).
OUTPUT_VARIANT_AAC = "aac"
OUTPUT_VARIANT_M4A = "m4a"
OUTPUT_VARIANTS = (OUTPUT_VARIANT_AAC, OUTPUT_VARIANT_M4A)
OUTPUT_VARIANT = os.environ.get("EXOSALVAGE_OUTPUT_VARIANT", OUTPUT_VARIANT_AAC).strip().lower()

# Files copied into staging by the collector.
SEGMENT_EXTENSION = ".exo"

PLACEHOLDER_TITLE = "Unknown Title"
PLACEHOLDER_ARTIST = "Unknown Artist"
PLACEHOLDER_ALBUM = "Unknown Album"

# ExoPlayer catalog relations.
CACHE_METADATA_TABLE = os.environ.get(
    "EXOSALVAGE_CACHE_TABLE",
    "ExoPlayerCacheFileMetadata44519d37edfdb77",
)
DOWNLOADS_TABLE = os.environ.get("EXOSALVAGE_DOWNLOADS_TABLE", "ExoPlayerDownloads")

# Per-call ceilings for external work; expiry is handled like any other failure.
METADATA_TIMEOUT_SECONDS = float(os.environ.get("EXOSALVAGE_METADATA_TIMEOUT_SECONDS", "20"))
ARTWORK_TIMEOUT_SECONDS = float(os.environ.get("EXOSALVAGE_ARTWORK_TIMEOUT_SECONDS", "15"))
TRANSCODE_TIMEOUT_SECONDS = float(os.environ.get("EXOSALVAGE_TRANSCODE_TIMEOUT_SECONDS", "600"))

# Toggle for probing transcoded output before it is committed.
VERIFY_TRANSCODE_OUTPUT = True
