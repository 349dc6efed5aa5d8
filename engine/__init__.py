from .matcher import MatchedPair, match_record
from .paths import SalvagePaths, build_salvage_paths
from .pipeline import BatchSummary, RecordOutcome, SalvagePipeline
from .staging import collect_segments, snapshot_staging

__all__ = [
    "BatchSummary",
    "MatchedPair",
    "RecordOutcome",
    "SalvagePaths",
    "SalvagePipeline",
    "build_salvage_paths",
    "collect_segments",
    "match_record",
    "snapshot_staging",
]
