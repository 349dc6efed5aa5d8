#!/usr/bin/env python3
"""
ExoPlayer cache salvage: recover titled audio files from anonymous cache segments.
- Copies *.exo segments from a source tree into the staging (backup) directory.
- Joins cache-file rows to download rows by byte length (first match wins).
- Resolves each source URI to a title and cover art through yt-dlp.
- Transcodes to AAC 128k with ffmpeg, tags, then renames into place.
"""

import argparse
import logging
import os
import sys

from config.settings import OUTPUT_VARIANT, OUTPUT_VARIANTS
from db.catalog import CatalogError, CatalogReader
from engine.paths import build_salvage_paths
from engine.pipeline import SalvagePipeline
from engine.staging import collect_segments, snapshot_staging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

_installed_handlers = []


def configure_logging(log_dir, *, verbose=False):
    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger("")
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    # Reconfiguring replaces the handlers from an earlier call.
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()

    os.makedirs(log_dir, exist_ok=True)
    file_handler = logging.FileHandler(os.path.join(log_dir, "salvage.log"), encoding="utf-8")
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)
    root.addHandler(file_handler)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.setLevel(level)
    root.addHandler(console)
    _installed_handlers.extend([file_handler, console])


def run(paths, *, variant=OUTPUT_VARIANT, collect=True, pipeline_factory=SalvagePipeline):
    """Run one salvage batch; the catalog is always closed before returning.

    ``Database connection closed.`` is the last line logged, also when a
    :class:`CatalogError` aborts the batch.
    """
    if collect:
        collect_segments(paths.source_dir, paths.staging_dir)

    catalog = CatalogReader(paths.db_path)
    try:
        staging_files = snapshot_staging(paths.staging_dir)
        catalog.open()
        pipeline = pipeline_factory(catalog, paths.staging_dir, variant=variant)
        return pipeline.run(staging_files)
    except CatalogError as exc:
        logging.error("Error processing files: %s", exc)
        raise
    finally:
        catalog.close()
        logging.info("Database connection closed.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Recover titled AAC files from an ExoPlayer cache.")
    parser.add_argument("--db", dest="db_path", help="ExoPlayer catalog database (exoplayer_internal.db).")
    parser.add_argument("--source", dest="source_dir", help="Directory searched recursively for .exo segments.")
    parser.add_argument("--staging", dest="staging_dir", help="Staging directory receiving segments and output.")
    parser.add_argument("--log-dir", help="Directory for salvage.log.")
    parser.add_argument("--variant", choices=OUTPUT_VARIANTS, default=OUTPUT_VARIANT, help="Output container.")
    parser.add_argument("--no-collect", action="store_true", help="Skip copying segments from the source tree.")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    paths = build_salvage_paths(
        db_path=args.db_path,
        source_dir=args.source_dir,
        staging_dir=args.staging_dir,
        log_dir=args.log_dir,
    )
    configure_logging(paths.log_dir, verbose=args.verbose)

    try:
        run(paths, variant=args.variant, collect=not args.no_collect)
    except CatalogError:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
