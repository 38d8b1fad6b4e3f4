"""Filesystem-backed artifact cache.

A produced file counts as valid when it exists and is larger than a minimum
size. The path itself is the cache key; there is no content hashing, so
re-running a batch skips every output that already landed on disk.
"""

import logging
from pathlib import Path
from typing import Union

DEFAULT_MIN_BYTES = 10000


class ArtifactCache:
    """Size-threshold check for previously produced artifacts"""

    def __init__(self, min_bytes: int = DEFAULT_MIN_BYTES):
        self.min_bytes = min_bytes
        self.logger = logging.getLogger('panelforge.artifact_cache')

    @classmethod
    def from_config(cls, config) -> "ArtifactCache":
        return cls(min_bytes=config.cache.min_bytes)

    def is_hit(self, path: Union[str, Path]) -> bool:
        """True iff ``path`` is a file whose size exceeds the threshold"""
        p = Path(path)
        try:
            return p.is_file() and p.stat().st_size > self.min_bytes
        except OSError as e:
            self.logger.debug(f"Cache stat failed for {p}: {e}")
            return False
