"""On-disk release log for the command line workflow."""

import contextlib
import hashlib
import json
import logging
import os
import tempfile
import uuid
from pathlib import Path

from pydantic import BaseModel, Field

from release_engine.models import Release, canonical_value

logger = logging.getLogger(__name__)


class ReleaseLog(BaseModel):
    """Append-only JSON ledger of releases.

    Attributes:
        version: Log file format version
        lineage: Random id fixed when the log is first created
        serial: Incremented on every save that adds releases
        releases: Releases in append order
    """

    version: int = 1
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    serial: int = 0
    releases: list[Release] = Field(default_factory=list)

    def save(self, path: Path) -> None:
        """Save the log to a JSON file.

        - Writes atomically (temp file + rename)
        - Writes a `.backup` copy of the previous log when overwriting
        """
        path.parent.mkdir(parents=True, exist_ok=True)

        backup_path = Path(str(path) + ".backup")
        with contextlib.suppress(FileNotFoundError):
            backup_path.write_bytes(path.read_bytes())

        data = self.model_dump(mode="json")
        content = json.dumps(data, indent=2, sort_keys=True) + "\n"

        fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        tmp_file = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            tmp_file.replace(path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp_file.unlink()
        logger.debug(
            "Release log saved: serial=%d releases=%d path=%s",
            self.serial,
            len(self.releases),
            path,
        )

    @classmethod
    def load(cls, path: Path) -> "ReleaseLog":
        """Load the log from a JSON file."""
        log = cls.model_validate_json(path.read_text(encoding="utf-8"))
        logger.debug("Release log loaded from %s (%d releases)", path, len(log.releases))
        return log

    @classmethod
    def load_or_create(cls, path: Path) -> "ReleaseLog":
        """Load an existing log or start an empty one."""
        if path.exists():
            return cls.load(path)
        logger.debug("Created new release log for %s", path)
        return cls()

    def extend(self, releases: list[Release]) -> int:
        """Append releases whose ids are not in the log yet. Return how many were added."""
        known = {r.id for r in self.releases}
        added = [r for r in releases if r.id not in known]
        if added:
            self.releases.extend(added)
            self.serial += 1
        return len(added)


def compute_log_digest(log: ReleaseLog) -> str:
    """Stable digest of the log content, independent of file formatting."""
    digestable = {
        "version": log.version,
        "lineage": log.lineage,
        "serial": log.serial,
        "releases": [r.model_dump(mode="json") for r in log.releases],
    }
    payload = canonical_value(digestable)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
