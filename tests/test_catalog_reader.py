from __future__ import annotations

import sqlite3

import pytest

from db.catalog import CacheFileRecord, CatalogError, CatalogReader, DownloadIntentRecord


def test_iter_cache_files_returns_rows_in_catalog_order(make_catalog) -> None:
    db_path = make_catalog(
        [("b.exo", 20), ("a.exo", 10), ("c.exo", 30)],
        [],
    )

    with CatalogReader(db_path) as catalog:
        records = catalog.read_cache_files()

    assert records == [
        CacheFileRecord(name="b.exo", length=20),
        CacheFileRecord(name="a.exo", length=10),
        CacheFileRecord(name="c.exo", length=30),
    ]


def test_find_intent_by_length_binds_first_of_equal_lengths(make_catalog) -> None:
    db_path = make_catalog(
        [("a.exo", 1024)],
        [
            ("https://example/first", 1024),
            ("https://example/second", 1024),
            ("https://example/other", 2048),
        ],
    )

    with CatalogReader(db_path) as catalog:
        first = catalog.find_intent_by_length(1024)
        again = catalog.find_intent_by_length(1024)

    assert first == DownloadIntentRecord(uri="https://example/first", content_length=1024)
    assert again == first


def test_find_intent_by_length_returns_none_on_miss(make_catalog) -> None:
    db_path = make_catalog([("a.exo", 5)], [("https://example/x", 6)])

    with CatalogReader(db_path) as catalog:
        assert catalog.find_intent_by_length(5) is None


def test_catalog_access_after_close_raises(make_catalog) -> None:
    db_path = make_catalog([("a.exo", 5)], [])
    catalog = CatalogReader(db_path)
    catalog.open()
    catalog.close()

    assert catalog.is_open is False
    with pytest.raises(CatalogError):
        catalog.read_cache_files()
    with pytest.raises(CatalogError):
        catalog.find_intent_by_length(5)
    with pytest.raises(CatalogError):
        catalog.open()


def test_missing_database_raises_catalog_error(tmp_path) -> None:
    catalog = CatalogReader(str(tmp_path / "missing.db"))

    with pytest.raises(CatalogError):
        catalog.open()


def test_missing_table_raises_catalog_error(tmp_path) -> None:
    db_path = tmp_path / "empty.db"
    sqlite3.connect(str(db_path)).close()

    with CatalogReader(str(db_path)) as catalog:
        with pytest.raises(CatalogError):
            catalog.read_cache_files()


def test_catalog_is_opened_read_only(make_catalog) -> None:
    db_path = make_catalog([("a.exo", 5)], [])

    with CatalogReader(db_path) as catalog:
        with pytest.raises(sqlite3.OperationalError):
            catalog._conn.execute("DELETE FROM ExoPlayerCacheFileMetadata44519d37edfdb77")
