"""Length-keyed join between cache files and download intents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from db.catalog import CacheFileRecord, DownloadIntentRecord

logger = logging.getLogger(__name__)

IntentLookup = Callable[[int], Optional[DownloadIntentRecord]]


@dataclass(frozen=True)
class MatchedPair:
    cache_file: CacheFileRecord
    intent: DownloadIntentRecord

    def __post_init__(self) -> None:
        if self.cache_file.length != self.intent.content_length:
            raise ValueError(
                f"length mismatch: cache={self.cache_file.length} intent={self.intent.content_length}"
            )


def match_record(record: CacheFileRecord, lookup: IntentLookup) -> MatchedPair | None:
    """Bind ``record`` to the first intent sharing its byte length.

    Several intents with the same length are not disambiguated; whichever the
    lookup returns first is used. A miss is logged and yields ``None``.
    """
    intent = lookup(record.length)
    if intent is None:
        logger.info("No matching entry in ExoPlayerDownloads for length: %s", record.length)
        return None
    if intent.content_length != record.length:
        logger.warning(
            "Lookup returned intent with wrong length name=%s length=%s intent_length=%s",
            record.name,
            record.length,
            intent.content_length,
        )
        return None
    logger.info("Matched %s (length=%s) to %s", record.name, record.length, intent.uri)
    return MatchedPair(cache_file=record, intent=intent)
