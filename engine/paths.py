import os
from dataclasses import dataclass
from pathlib import Path


def _env_path(key, default):
    return Path(os.environ.get(key) or default).resolve()


@dataclass(frozen=True)
class SalvagePaths:
    db_path: str
    source_dir: str
    staging_dir: str
    log_dir: str


def ensure_dir(path):
    if path:
        os.makedirs(path, exist_ok=True)


def default_paths(base_dir=None):
    base = Path(base_dir or os.getcwd())
    return SalvagePaths(
        db_path=str(_env_path("EXOSALVAGE_DB_PATH", base / "exoplayer_internal.db")),
        source_dir=str(_env_path("EXOSALVAGE_SOURCE_DIR", base / "src")),
        staging_dir=str(_env_path("EXOSALVAGE_STAGING_DIR", base / "exo_backup")),
        log_dir=str(_env_path("EXOSALVAGE_LOG_DIR", base / "logs")),
    )


def build_salvage_paths(*, db_path=None, source_dir=None, staging_dir=None, log_dir=None, base_dir=None):
    """Resolve run paths, letting explicit arguments win over environment defaults."""
    defaults = default_paths(base_dir)
    paths = SalvagePaths(
        db_path=os.path.abspath(db_path) if db_path else defaults.db_path,
        source_dir=os.path.abspath(source_dir) if source_dir else defaults.source_dir,
        staging_dir=os.path.abspath(staging_dir) if staging_dir else defaults.staging_dir,
        log_dir=os.path.abspath(log_dir) if log_dir else defaults.log_dir,
    )
    for d in (paths.staging_dir, paths.log_dir):
        ensure_dir(d)
    return paths
