"""Canonical, versioned album collection held in memory."""
import logging
import threading
from typing import Callable, Iterable, Optional

from songwall.models.album import AlbumRecord, Snapshot

logger = logging.getLogger(__name__)


class StaleSnapshotError(Exception):
    """The store moved past the version a write was computed against."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"expected version {expected}, store is at {actual}")
        self.expected = expected
        self.actual = actual


class AlbumStore:
    """Holds the current Snapshot and swaps it atomically.

    Readers take no lock: they get whatever Snapshot reference was last
    published, which is always a complete collection. Writers serialize on
    ``_commit_lock`` only for the version check, the ``before_commit`` hook
    and the reference swap.
    """

    def __init__(self, initial: Optional[Snapshot] = None) -> None:
        self._snapshot = initial if initial is not None else Snapshot(version=0)
        self._commit_lock = threading.Lock()

    @property
    def version(self) -> int:
        return self._snapshot.version

    def current_snapshot(self) -> Snapshot:
        return self._snapshot

    def replace(
        self,
        records: Iterable[AlbumRecord],
        *,
        expected_version: Optional[int] = None,
        before_commit: Optional[Callable[[Snapshot], None]] = None,
    ) -> Snapshot:
        """Publish ``records`` as the next version and return the new Snapshot.

        Raises StaleSnapshotError when ``expected_version`` no longer matches.
        If ``before_commit`` raises, nothing is swapped and the error propagates.
        """
        records = tuple(records)
        with self._commit_lock:
            current = self._snapshot
            if expected_version is not None and current.version != expected_version:
                raise StaleSnapshotError(expected_version, current.version)
            candidate = Snapshot(version=current.version + 1, records=records)
            if before_commit is not None:
                before_commit(candidate)
            self._snapshot = candidate
        logger.debug("Store: committed version %d (%d albums)", candidate.version, len(records))
        return candidate
