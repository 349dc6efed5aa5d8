"""Per-record salvage pipeline: match, resolve, transcode, commit."""

from __future__ import annotations

import logging
import os
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from config.settings import (
    OUTPUT_VARIANT,
    PLACEHOLDER_ALBUM,
    PLACEHOLDER_ARTIST,
    VERIFY_TRANSCODE_OUTPUT,
)
from db.catalog import CacheFileRecord, CatalogError, DownloadIntentRecord
from engine.matcher import match_record
from engine.staging import snapshot_staging
from media.transcode import TranscodeError, TranscodeJob, run_transcode
from media.validation import validate_transcoded_output
from metadata.artwork import download_artwork
from metadata.naming import build_output_paths, output_extension, sanitize_filename
from metadata.resolver import RemoteMetadata, resolve_metadata
from metadata.tagger import apply_tags

logger = logging.getLogger(__name__)

RECORD_STATE_MATCHED = "matched"
RECORD_STATE_METADATA_RESOLVED = "metadata_resolved"
RECORD_STATE_NAME_SANITIZED = "name_sanitized"
RECORD_STATE_ARTWORK_FETCHED = "artwork_fetched"
RECORD_STATE_ARTWORK_SKIPPED = "artwork_skipped"
RECORD_STATE_TRANSCODED = "transcoded"
RECORD_STATE_COMMITTED = "committed"
RECORD_STATE_SKIPPED = "skipped"
TERMINAL_STATES = (RECORD_STATE_COMMITTED, RECORD_STATE_SKIPPED)

SKIP_JOIN_MISS = "join_miss"
SKIP_METADATA_UNAVAILABLE = "metadata_unavailable"
SKIP_STAGING_MISS = "staging_miss"
SKIP_TRANSCODE_FAILED = "transcode_failed"
SKIP_OUTPUT_INVALID = "output_invalid"
SKIP_COMMIT_FAILED = "commit_failed"
SKIP_UNEXPECTED_ERROR = "unexpected_error"


class _Catalog(Protocol):
    def read_cache_files(self) -> list[CacheFileRecord]:
        """Return cache-file rows in catalog order."""

    def find_intent_by_length(self, length: int) -> Optional[DownloadIntentRecord]:
        """Return the first download intent with ``content_length == length``."""


@dataclass
class RecordOutcome:
    name: str
    length: int
    state: str | None = None
    uri: str | None = None
    stem: str | None = None
    output_path: str | None = None
    artwork_embedded: bool = False
    reason: str | None = None
    history: list[str] = field(default_factory=list)

    def advance(self, state: str) -> None:
        self.history.append(state)
        self.state = state

    def skip(self, reason: str) -> "RecordOutcome":
        self.reason = reason
        self.advance(RECORD_STATE_SKIPPED)
        return self


@dataclass
class BatchSummary:
    outcomes: list[RecordOutcome] = field(default_factory=list)
    collisions: int = 0

    @property
    def committed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state == RECORD_STATE_COMMITTED)

    @property
    def skipped(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state == RECORD_STATE_SKIPPED)

    @property
    def skip_reasons(self) -> Counter:
        return Counter(outcome.reason for outcome in self.outcomes if outcome.state == RECORD_STATE_SKIPPED)


def _remove_quietly(path: str | None) -> None:
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        return
    except OSError:
        logger.warning("Failed to remove temporary file %s", path, exc_info=True)


class SalvagePipeline:
    """Sequential orchestrator over the cache records of one catalog.

    Records are processed one at a time in catalog order. Every per-record
    failure ends in the ``skipped`` state; only :class:`CatalogError` escapes.
    """

    def __init__(
        self,
        catalog: _Catalog,
        staging_dir: str,
        *,
        variant: str = OUTPUT_VARIANT,
        resolver: Callable[[str], Optional[RemoteMetadata]] | None = None,
        artwork_fetcher: Callable[[str, str], bool] | None = None,
        transcoder: Callable[[TranscodeJob], None] | None = None,
        tagger: Callable[..., Any] | None = None,
        output_validator: Callable[[str], bool] | None = None,
        verify_output: bool = VERIFY_TRANSCODE_OUTPUT,
    ) -> None:
        self.catalog = catalog
        self.staging_dir = staging_dir
        self.variant = output_extension(variant)
        self._resolver = resolver or resolve_metadata
        self._artwork_fetcher = artwork_fetcher or download_artwork
        self._transcoder = transcoder or run_transcode
        self._tagger = tagger or apply_tags
        self._output_validator = output_validator or validate_transcoded_output
        self._verify_output = verify_output

    def run(self, staging_files: frozenset[str] | None = None) -> BatchSummary:
        """Process every cache record and return the batch summary."""
        summary = BatchSummary()
        committed_paths: set[str] = set()
        logger.info("Reading staging directory %s for files...", self.staging_dir)
        files = staging_files if staging_files is not None else snapshot_staging(self.staging_dir)
        if not files:
            logger.info("No files found in staging directory.")
            return summary
        logger.info("Found %d files in staging directory. Processing...", len(files))

        records = self.catalog.read_cache_files()
        if not records:
            logger.info("No rows found in cache metadata table.")
            return summary
        logger.info("Found %d rows in cache metadata table. Processing...", len(records))

        for record in records:
            outcome = self.process_record(record, files)
            if outcome.state == RECORD_STATE_COMMITTED and outcome.output_path:
                if outcome.output_path in committed_paths:
                    summary.collisions += 1
                    logger.warning(
                        "Name collision: %s overwrote an output committed earlier in this run",
                        outcome.output_path,
                    )
                committed_paths.add(outcome.output_path)
            summary.outcomes.append(outcome)

        logger.info(
            "Batch finished: committed=%d skipped=%d collisions=%d reasons=%s",
            summary.committed,
            summary.skipped,
            summary.collisions,
            dict(summary.skip_reasons),
        )
        return summary

    def process_record(self, record: CacheFileRecord, staging_files: frozenset[str]) -> RecordOutcome:
        """Drive one cache record to ``committed`` or ``skipped``."""
        outcome = RecordOutcome(name=record.name, length=record.length)
        try:
            return self._process(record, staging_files, outcome)
        except CatalogError:
            raise
        except Exception:
            logger.exception(
                "Unexpected error processing name=%s length=%s uri=%s",
                record.name,
                record.length,
                outcome.uri,
            )
            return outcome.skip(SKIP_UNEXPECTED_ERROR)

    def _process(self, record: CacheFileRecord, staging_files: frozenset[str], outcome: RecordOutcome) -> RecordOutcome:
        pair = match_record(record, self.catalog.find_intent_by_length)
        if pair is None:
            return outcome.skip(SKIP_JOIN_MISS)
        uri = pair.intent.uri
        outcome.uri = uri
        outcome.advance(RECORD_STATE_MATCHED)

        metadata = self._resolver(uri)
        if metadata is None or not metadata.title:
            logger.info("Could not retrieve metadata/title for URI: %s", uri)
            return outcome.skip(SKIP_METADATA_UNAVAILABLE)
        outcome.advance(RECORD_STATE_METADATA_RESOLVED)

        stem = sanitize_filename(metadata.title)
        paths = build_output_paths(self.staging_dir, stem, self.variant)
        outcome.stem = stem
        outcome.advance(RECORD_STATE_NAME_SANITIZED)

        # Checked before any download so a missing input costs nothing.
        if record.name not in staging_files:
            logger.info("File %s not found in staging directory.", record.name)
            return outcome.skip(SKIP_STAGING_MISS)

        artwork_path = None
        if metadata.artwork_url:
            if self._artwork_fetcher(metadata.artwork_url, paths.artwork_path):
                artwork_path = paths.artwork_path
                outcome.advance(RECORD_STATE_ARTWORK_FETCHED)
            else:
                logger.warning("Artwork unavailable for %s; converting without cover art", uri)
                outcome.advance(RECORD_STATE_ARTWORK_SKIPPED)
        else:
            outcome.advance(RECORD_STATE_ARTWORK_SKIPPED)

        tags = {
            "title": metadata.title,
            "artist": PLACEHOLDER_ARTIST,
            "album": PLACEHOLDER_ALBUM,
        }
        job = TranscodeJob(
            input_path=os.path.join(self.staging_dir, record.name),
            final_output_path=paths.final_path,
            temporary_output_path=paths.temporary_path,
            variant=self.variant,
            artwork_path=artwork_path,
            tags=tags,
        )

        committed = False
        try:
            try:
                self._transcoder(job)
            except TranscodeError as exc:
                logger.error(
                    "Error converting %s (length=%s uri=%s): %s",
                    record.name,
                    record.length,
                    uri,
                    exc,
                )
                return outcome.skip(SKIP_TRANSCODE_FAILED)
            outcome.advance(RECORD_STATE_TRANSCODED)

            outcome.artwork_embedded = self._fill_tags(job, uri)

            if self._verify_output and not self._output_validator(job.temporary_output_path):
                logger.error("Transcoded output failed validation for %s: %s", record.name, job.temporary_output_path)
                return outcome.skip(SKIP_OUTPUT_INVALID)

            try:
                os.replace(job.temporary_output_path, job.final_output_path)
            except OSError:
                logger.exception("Failed to rename %s to %s", job.temporary_output_path, job.final_output_path)
                return outcome.skip(SKIP_COMMIT_FAILED)
            committed = True
        finally:
            if metadata.artwork_url:
                _remove_quietly(paths.artwork_path)
            if not committed:
                _remove_quietly(job.temporary_output_path)

        outcome.output_path = job.final_output_path
        outcome.advance(RECORD_STATE_COMMITTED)
        logger.info("Renamed and converted %s to %s", record.name, os.path.basename(job.final_output_path))
        return outcome

    def _fill_tags(self, job: TranscodeJob, uri: str) -> bool:
        """Fill tags the encode pass could not carry. Never fails the record."""
        try:
            self._tagger(
                job.temporary_output_path,
                job.tags,
                job.artwork_path,
                source_uri=uri,
                allow_overwrite=False,
            )
        except Exception:
            logger.warning("Tagging skipped for %s", job.temporary_output_path, exc_info=True)
            return job.embeds_artwork_in_stream
        return bool(job.artwork_path)
