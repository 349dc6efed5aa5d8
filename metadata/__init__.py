from .naming import build_output_paths, sanitize_filename
from .resolver import RemoteMetadata, resolve_metadata

__all__ = ["RemoteMetadata", "build_output_paths", "resolve_metadata", "sanitize_filename"]
