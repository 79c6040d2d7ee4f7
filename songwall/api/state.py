"""Shared application state (injected into routes)."""
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from songwall.config import (
    ALBUMS_PATH,
    DEFAULT_ALBUMS_PATH,
    MAX_COMMIT_ATTEMPTS,
    OBSERVER_IDLE_TIMEOUT_SEC,
)
from songwall.core.album_store import AlbumStore
from songwall.core.broadcast_hub import BroadcastHub, ObserverHandle
from songwall.core.mutation_applier import MutationApplier
from songwall.core.snapshot_persister import SnapshotPersister

logger = logging.getLogger(__name__)


class AppState:
    """Owns the album wall: store, persister, hub and applier.

    ``start()`` loads the last saved wall; ``shutdown()`` stops writes and
    disconnects observers. Components are None until ``start()``.
    """

    def __init__(
        self,
        albums_path: Path = ALBUMS_PATH,
        default_albums_path: Optional[Path] = DEFAULT_ALBUMS_PATH,
        max_commit_attempts: int = MAX_COMMIT_ATTEMPTS,
        observer_idle_timeout: float = OBSERVER_IDLE_TIMEOUT_SEC,
    ) -> None:
        self.persister = SnapshotPersister(albums_path, default_albums_path)
        self._max_commit_attempts = max_commit_attempts
        self.observer_idle_timeout = observer_idle_timeout
        self.store: Optional[AlbumStore] = None
        self.hub: Optional[BroadcastHub] = None
        self.applier: Optional[MutationApplier] = None
        self.started_at: Optional[datetime] = None
        self._started_monotonic = 0.0

    @property
    def started(self) -> bool:
        return self.store is not None

    def start(self) -> None:
        if self.started:
            return
        self.store = AlbumStore(self.persister.load())
        self.hub = BroadcastHub(snapshot_source=self.store.current_snapshot)
        self.applier = MutationApplier(
            self.store, self.persister, self.hub, max_attempts=self._max_commit_attempts
        )
        self.started_at = datetime.now(timezone.utc)
        self._started_monotonic = time.monotonic()
        logger.info(
            "Album wall ready: %d albums at version %d",
            len(self.store.current_snapshot()),
            self.store.version,
        )

    def shutdown(self) -> None:
        if not self.started:
            return
        self.applier.close()
        self.hub.close()
        logger.info("Album wall stopped at version %d", self.store.version)

    def reap_idle_observers(self, now: Optional[float] = None) -> List[ObserverHandle]:
        if not self.started or self.observer_idle_timeout <= 0:
            return []
        return self.hub.reap_idle(self.observer_idle_timeout, now=now)

    def uptime_sec(self) -> float:
        return time.monotonic() - self._started_monotonic if self.started else 0.0


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        _state = AppState()
    return _state


def set_state(state: Optional[AppState]) -> None:
    """Swap the process-wide state (tests inject one backed by a temp dir)."""
    global _state
    _state = state
