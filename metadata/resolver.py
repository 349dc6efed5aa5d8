"""Best-effort source metadata lookup through yt-dlp."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from yt_dlp import YoutubeDL

from config.settings import METADATA_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteMetadata:
    title: str | None
    artwork_url: str | None


def build_metadata_opts(timeout: float = METADATA_TIMEOUT_SECONDS) -> dict[str, Any]:
    """yt-dlp options for a single metadata-only probe."""
    return {
        "quiet": True,
        "no_warnings": True,
        "skip_download": True,
        "noplaylist": True,
        "call_home": False,
        "socket_timeout": timeout,
        # One attempt per record; a failure forfeits this record for the run.
        "retries": 0,
        "extractor_retries": 0,
    }


def _first_thumbnail_url(info: dict[str, Any]) -> str | None:
    thumbnails = info.get("thumbnails")
    if not isinstance(thumbnails, list) or not thumbnails:
        return None
    first = thumbnails[0]
    if not isinstance(first, dict):
        return None
    url = str(first.get("url") or "").strip()
    return url or None


def extract_remote_metadata(info: Any) -> RemoteMetadata | None:
    if not isinstance(info, dict):
        return None
    title = info.get("title")
    title = str(title) if title not in (None, "") else None
    return RemoteMetadata(title=title, artwork_url=_first_thumbnail_url(info))


def resolve_metadata(uri: str, *, timeout: float = METADATA_TIMEOUT_SECONDS) -> RemoteMetadata | None:
    """Resolve ``uri`` to its title and first thumbnail URL.

    Returns ``None`` on any failure. Never raises.
    """
    logger.info("Fetching metadata for URI: %s", uri)
    try:
        with YoutubeDL(build_metadata_opts(timeout)) as ydl:
            info = ydl.extract_info(uri, download=False)
    except Exception as exc:
        logger.error("Error fetching metadata for URI: %s (%s)", uri, exc)
        return None
    metadata = extract_remote_metadata(info)
    if metadata is None:
        logger.error("Malformed metadata result for URI: %s", uri)
        return None
    logger.info("Retrieved title: %s", metadata.title)
    return metadata
