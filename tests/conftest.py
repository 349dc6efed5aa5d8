import sqlite3
import sys
from pathlib import Path

import pytest


# Ensure tests can import project packages regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)


@pytest.fixture
def make_catalog(tmp_path):
    """Build an ExoPlayer-shaped catalog database from row lists."""

    def _make(cache_rows, download_rows, *, name="exoplayer_internal.db"):
        db_path = tmp_path / name
        conn = sqlite3.connect(str(db_path))
        try:
            conn.execute(
                """
                CREATE TABLE ExoPlayerCacheFileMetadata44519d37edfdb77 (
                    name TEXT PRIMARY KEY NOT NULL,
                    length INTEGER NOT NULL,
                    last_touch_timestamp INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE ExoPlayerDownloads (
                    id TEXT PRIMARY KEY NOT NULL,
                    uri TEXT NOT NULL,
                    content_length INTEGER NOT NULL
                )
                """
            )
            conn.executemany(
                "INSERT INTO ExoPlayerCacheFileMetadata44519d37edfdb77 (name, length) VALUES (?, ?)",
                cache_rows,
            )
            conn.executemany(
                "INSERT INTO ExoPlayerDownloads (id, uri, content_length) VALUES (?, ?, ?)",
                [(f"dl-{idx}", uri, length) for idx, (uri, length) in enumerate(download_rows)],
            )
            conn.commit()
        finally:
            conn.close()
        return str(db_path)

    return _make
