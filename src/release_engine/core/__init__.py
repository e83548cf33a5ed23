"""Storage port, reference storage and the on-disk release log."""

from release_engine.core.lock import ReleaseLogLock
from release_engine.core.release_log import ReleaseLog, compute_log_digest
from release_engine.core.storage import InMemoryReleaseStorage, ReleaseFilter, ReleaseStorage

__all__ = [
    "InMemoryReleaseStorage",
    "ReleaseFilter",
    "ReleaseLog",
    "ReleaseLogLock",
    "ReleaseStorage",
    "compute_log_digest",
]
