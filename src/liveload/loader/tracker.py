"""Source fingerprints for change detection.

The engine polls; nothing here watches the filesystem. Each refresh
compares the current fingerprint of a unit's files with the one recorded
when they were last loaded.
"""

import hashlib
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fingerprint:
    """Identity of a source file's content at one point in time."""

    mtime_ns: int
    size: int
    digest: str


class SourceTracker:
    """Remembers the fingerprint of every loaded source file.

    Uses modification time and size as a fast path and the SHA256 of the
    content to confirm, so touching a file without editing it is not a
    change.
    """

    def __init__(self) -> None:
        self._fingerprints: dict[Path, Fingerprint] = {}

    def _compute_hash(self, path: Path) -> str:
        """Compute SHA256 hash of file content."""
        return hashlib.sha256(path.read_bytes()).hexdigest()

    def fingerprint(self, path: Path) -> Fingerprint | None:
        """Current fingerprint of path, or None if it cannot be read."""
        try:
            stat = path.stat()
            return Fingerprint(stat.st_mtime_ns, stat.st_size, self._compute_hash(path))
        except OSError as e:
            logger.debug(f"Cannot fingerprint {path}: {e}")
            return None

    def record(self, paths: Iterable[Path]) -> None:
        """Store the current fingerprint of each path as its loaded state."""
        for path in paths:
            fingerprint = self.fingerprint(path)
            if fingerprint is None:
                self._fingerprints.pop(path, None)
            else:
                self._fingerprints[path] = fingerprint

    def is_known(self, path: Path) -> bool:
        return path in self._fingerprints

    def changed(self, paths: Iterable[Path]) -> set[Path]:
        """Return the paths whose content differs from the recorded state.

        Paths never recorded are not reported; their current state becomes
        the baseline.
        """
        changed: set[Path] = set()

        for path in paths:
            old = self._fingerprints.get(path)
            if old is None:
                self.record([path])
                continue

            try:
                stat = path.stat()
            except OSError:
                changed.add(path)
                continue

            if stat.st_mtime_ns == old.mtime_ns and stat.st_size == old.size:
                continue

            new = self.fingerprint(path)
            if new is None or new.digest != old.digest:
                changed.add(path)
            else:
                # Touched but not edited
                self._fingerprints[path] = new

        return changed

    def forget(self, paths: Iterable[Path]) -> None:
        for path in paths:
            self._fingerprints.pop(path, None)

    def __len__(self) -> int:
        return len(self._fingerprints)
