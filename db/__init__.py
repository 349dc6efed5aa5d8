"""Database helpers for exosalvage."""

from db.catalog import CacheFileRecord, CatalogError, CatalogReader, DownloadIntentRecord

__all__ = ["CacheFileRecord", "CatalogError", "CatalogReader", "DownloadIntentRecord"]
