"""Read-only access to the ExoPlayer cache catalog."""

from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from config.settings import CACHE_METADATA_TABLE, DOWNLOADS_TABLE

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when the catalog cannot be opened or queried."""


@dataclass(frozen=True)
class CacheFileRecord:
    """One cached segment: opaque filename and its byte length."""

    name: str
    length: int


@dataclass(frozen=True)
class DownloadIntentRecord:
    """One logged download: source URI and its expected byte length."""

    uri: str
    content_length: int


def _quote_identifier(name: str) -> str:
    return '"' + str(name).replace('"', '""') + '"'


class CatalogReader:
    """Process-scoped handle over the two catalog relations.

    The connection is opened once with :meth:`open` and closed once with
    :meth:`close`; any query after close raises :class:`CatalogError`.
    """

    def __init__(
        self,
        db_path: str,
        *,
        cache_table: str = CACHE_METADATA_TABLE,
        downloads_table: str = DOWNLOADS_TABLE,
    ) -> None:
        self.db_path = db_path
        self.cache_table = cache_table
        self.downloads_table = downloads_table
        self._conn: sqlite3.Connection | None = None
        self._closed = False

    def __enter__(self) -> "CatalogReader":
        self.open()
        return self

    def __exit__(self, *_exc) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        if self._closed:
            raise CatalogError("catalog connection already closed")
        if self._conn is not None:
            return
        if not os.path.isfile(self.db_path):
            raise CatalogError(f"catalog database not found: {self.db_path}")
        try:
            # Read-only URI so the catalog is never modified.
            conn = sqlite3.connect(f"{Path(self.db_path).resolve().as_uri()}?mode=ro", uri=True, timeout=30)
        except sqlite3.Error as exc:
            raise CatalogError(f"failed to open catalog {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        self._conn = conn
        logger.info("Opened catalog %s", self.db_path)

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            finally:
                self._conn = None
        self._closed = True

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            if self._closed:
                raise CatalogError("catalog connection is closed")
            raise CatalogError("catalog connection is not open")
        return self._conn

    def read_cache_files(self) -> list[CacheFileRecord]:
        """Return every cache-file row in catalog order."""
        return list(self.iter_cache_files())

    def iter_cache_files(self) -> Iterator[CacheFileRecord]:
        conn = self._require_conn()
        try:
            cur = conn.execute(
                f"SELECT name, length FROM {_quote_identifier(self.cache_table)} ORDER BY rowid"
            )
            rows = cur.fetchall()
        except sqlite3.Error as exc:
            raise CatalogError(f"failed to read {self.cache_table}: {exc}") from exc
        for row in rows:
            name = str(row["name"] or "")
            try:
                length = int(row["length"])
            except (TypeError, ValueError):
                logger.warning("Ignoring cache row with invalid length name=%s length=%r", name, row["length"])
                continue
            if not name or length < 0:
                logger.warning("Ignoring cache row name=%r length=%s", name, length)
                continue
            yield CacheFileRecord(name=name, length=length)

    def find_intent_by_length(self, length: int) -> DownloadIntentRecord | None:
        """Return the first download intent whose content length equals ``length``."""
        conn = self._require_conn()
        try:
            cur = conn.execute(
                f"""
                SELECT uri, content_length
                FROM {_quote_identifier(self.downloads_table)}
                WHERE content_length = ?
                ORDER BY rowid
                LIMIT 1
                """,
                (int(length),),
            )
            row = cur.fetchone()
        except sqlite3.Error as exc:
            raise CatalogError(f"failed to query {self.downloads_table}: {exc}") from exc
        if row is None:
            return None
        uri = str(row["uri"] or "").strip()
        if not uri:
            return None
        return DownloadIntentRecord(uri=uri, content_length=int(row["content_length"]))
