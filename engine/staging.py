"""Staging directory helpers: segment collection and pre-run snapshot."""

from __future__ import annotations

import logging
import os
import shutil

from config.settings import SEGMENT_EXTENSION
from engine.paths import ensure_dir

logger = logging.getLogger(__name__)


def collect_segments(source_dir: str, staging_dir: str, *, extension: str = SEGMENT_EXTENSION) -> list[str]:
    """Copy every ``extension`` file under ``source_dir`` into ``staging_dir``.

    The walk is recursive and flattens the tree: files land in staging under
    their base name, so a later file with the same name replaces an earlier
    one. Unreadable directories are logged and skipped. Returns the staged
    paths in copy order.
    """
    logger.info("Ensuring staging directory exists: %s", staging_dir)
    ensure_dir(staging_dir)
    if not os.path.isdir(source_dir):
        logger.warning("Source directory not found: %s", source_dir)
        return []

    logger.info("Searching %s recursively for %s files...", source_dir, extension)
    staging_real = os.path.realpath(staging_dir)
    copied: list[str] = []

    def _on_walk_error(exc: OSError) -> None:
        logger.error("Error reading directory %s: %s", exc.filename, exc)

    for dirpath, dirnames, filenames in os.walk(source_dir, onerror=_on_walk_error):
        # Never descend into staging when it sits inside the source tree.
        dirnames[:] = sorted(
            d for d in dirnames if os.path.realpath(os.path.join(dirpath, d)) != staging_real
        )
        for filename in sorted(filenames):
            if os.path.splitext(filename)[1] != extension:
                continue
            src = os.path.join(dirpath, filename)
            dst = os.path.join(staging_dir, filename)
            try:
                shutil.copy2(src, dst)
            except OSError:
                logger.exception("Failed to copy %s to %s", src, dst)
                continue
            logger.info("Copied %s to %s", src, dst)
            copied.append(dst)

    logger.info("Completed copying files (%d copied).", len(copied))
    return copied


def snapshot_staging(staging_dir: str) -> frozenset[str]:
    """Return the names of regular files present in staging right now.

    The snapshot is taken once per run; files added afterwards are not seen.
    """
    ensure_dir(staging_dir)
    with os.scandir(staging_dir) as entries:
        return frozenset(entry.name for entry in entries if entry.is_file())
