"""Fan-out of committed snapshots to live observers (one delivery slot each)."""
import asyncio
import logging
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from songwall.models.album import Snapshot

logger = logging.getLogger(__name__)


class ObserverHandle:
    """One live subscriber. Holds at most one undelivered snapshot.

    Offers may come from any thread; the slot itself is only touched on the
    observer's event loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, role: str = "wall") -> None:
        self.observer_id = uuid.uuid4().hex
        self.role = role
        self.connected_at = datetime.now(timezone.utc).isoformat()
        self.last_activity = time.monotonic()
        self.last_activity_at = self.connected_at
        self.connected = True
        self.last_seen_version = -1
        self._loop = loop
        self._slot: "asyncio.Queue[Optional[Snapshot]]" = asyncio.Queue(maxsize=1)
        self._queued_version = -1

    def touch(self) -> None:
        """Record that the client sent something."""
        self.last_activity = time.monotonic()
        self.last_activity_at = datetime.now(timezone.utc).isoformat()

    def offer(self, snapshot: Snapshot, *, force: bool = False) -> None:
        """Make ``snapshot`` the next thing this observer receives.

        Raises RuntimeError if the observer's loop is closed.
        """
        if not self.connected:
            return
        if _running_loop() is self._loop:
            self._put(snapshot, force)
        else:
            self._loop.call_soon_threadsafe(self._put, snapshot, force)

    async def next_snapshot(self) -> Optional[Snapshot]:
        """Wait for the next snapshot; None once the observer is disconnected."""
        snapshot = await self._slot.get()
        if snapshot is None:
            return None
        self.last_seen_version = max(self.last_seen_version, snapshot.version)
        return snapshot

    def disconnect(self) -> None:
        if not self.connected:
            return
        self.connected = False
        try:
            if _running_loop() is self._loop:
                self._wake()
            else:
                self._loop.call_soon_threadsafe(self._wake)
        except RuntimeError:
            # Loop already gone; nobody is waiting on the slot.
            pass

    def _put(self, snapshot: Snapshot, force: bool) -> None:
        if not self.connected:
            return
        if not force and snapshot.version <= max(self.last_seen_version, self._queued_version):
            return
        if self._slot.full():
            superseded = self._slot.get_nowait()
            if superseded is not None:
                logger.debug(
                    "Observer %s: version %d superseded by %d before delivery",
                    self.observer_id, superseded.version, snapshot.version,
                )
        self._slot.put_nowait(snapshot)
        self._queued_version = snapshot.version

    def _wake(self) -> None:
        if self._slot.full():
            self._slot.get_nowait()
        self._slot.put_nowait(None)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class BroadcastHub:
    """Registry of observers. ``publish`` never blocks on, or fails because of, an observer."""

    def __init__(self, snapshot_source: Callable[[], Snapshot]) -> None:
        self._snapshot_source = snapshot_source
        self._observers: Dict[str, ObserverHandle] = {}
        self._lock = threading.Lock()

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def observers(self) -> List[ObserverHandle]:
        with self._lock:
            return list(self._observers.values())

    def subscribe(self, role: str = "wall") -> ObserverHandle:
        """Register a new observer on the running loop and queue the current snapshot for it."""
        handle = ObserverHandle(asyncio.get_running_loop(), role=role)
        with self._lock:
            self._observers[handle.observer_id] = handle
        handle.offer(self._snapshot_source())
        logger.info("Observer %s (%s) connected (total: %d)", handle.observer_id, role, self.observer_count)
        return handle

    def count_by_role(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for handle in self.observers():
            counts[handle.role] = counts.get(handle.role, 0) + 1
        return counts

    def last_activity_at(self) -> Optional[str]:
        """ISO time of the most recent message from any observer, or None with no observers."""
        handles = self.observers()
        if not handles:
            return None
        return max(handles, key=lambda h: h.last_activity).last_activity_at

    def reap_idle(self, timeout_sec: float, now: Optional[float] = None) -> List[ObserverHandle]:
        """Disconnect observers that have sent nothing for ``timeout_sec`` seconds."""
        now = time.monotonic() if now is None else now
        stale = [h for h in self.observers() if now - h.last_activity > timeout_sec]
        for handle in stale:
            logger.info(
                "Observer %s idle for %.0fs, disconnecting", handle.observer_id, now - handle.last_activity
            )
            self.unsubscribe(handle)
        return stale

    def unsubscribe(self, handle: ObserverHandle) -> None:
        with self._lock:
            removed = self._observers.pop(handle.observer_id, None)
        handle.disconnect()
        if removed is not None:
            logger.info("Observer %s disconnected (remaining: %d)", handle.observer_id, self.observer_count)

    def publish(self, snapshot: Snapshot) -> None:
        for handle in self.observers():
            try:
                handle.offer(snapshot)
            except Exception as e:
                logger.warning("Observer %s: delivery of version %d failed (%s), dropping", handle.observer_id, snapshot.version, e)
                self.unsubscribe(handle)

    def close(self) -> None:
        """Disconnect every observer."""
        for handle in self.observers():
            self.unsubscribe(handle)
