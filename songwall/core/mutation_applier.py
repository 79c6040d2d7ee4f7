"""Validate and apply structural edits (reorder, insert, remove, update) to the wall.

Each edit is computed against a snapshot read without locking, then committed
with a single ``AlbumStore.replace(expected_version=...)``. If another writer
committed in between, the edit is recomputed against the newer snapshot, up to
``max_attempts`` times, and then fails with ConflictError. Saving happens inside
the commit, before the swap, so a failed save leaves the wall unchanged and
nothing is broadcast.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from songwall.config import MAX_COMMIT_ATTEMPTS
from songwall.core.album_store import AlbumStore, StaleSnapshotError
from songwall.core.broadcast_hub import BroadcastHub
from songwall.core.errors import (
    ConflictError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from songwall.core.snapshot_persister import SnapshotPersister
from songwall.models.album import AlbumRecord, Snapshot, renumber

logger = logging.getLogger(__name__)

Build = Callable[[Snapshot], Sequence[AlbumRecord]]


@dataclass(frozen=True)
class CommitResult:
    snapshot: Snapshot
    attempts: int


def _validate_permutation(snapshot: Snapshot, ordered_ids: Sequence[str]) -> None:
    current = set(snapshot.ids())
    duplicates = sorted(i for i, n in Counter(ordered_ids).items() if n > 1)
    unknown = sorted(set(ordered_ids) - current)
    missing = sorted(current - set(ordered_ids))
    problems = []
    if duplicates:
        problems.append(f"duplicate ids {duplicates}")
    if unknown:
        problems.append(f"unknown ids {unknown}")
    if missing:
        problems.append(f"missing ids {missing}")
    if problems:
        raise ValidationError("Reorder must list every album exactly once: " + "; ".join(problems))


def _apply_order(records: Sequence[AlbumRecord], ordered_ids: Sequence[str]) -> List[AlbumRecord]:
    """Put the requested ids, in requested order, into the slots they occupy.

    Albums not named in ``ordered_ids`` (inserted after the request was
    validated) keep their slot; ids no longer present are skipped.
    """
    by_id = {r.id: r for r in records}
    requested = iter([i for i in ordered_ids if i in by_id])
    named = set(ordered_ids)
    return [by_id[next(requested)] if r.id in named else r for r in records]


class MutationApplier:
    def __init__(
        self,
        store: AlbumStore,
        persister: SnapshotPersister,
        hub: BroadcastHub,
        max_attempts: int = MAX_COMMIT_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._store = store
        self._persister = persister
        self._hub = hub
        self._max_attempts = max_attempts
        self._closed = False

    def close(self) -> None:
        """Stop accepting writes. Already-committed state is on disk."""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def reorder(self, ordered_ids: Sequence[str]) -> CommitResult:
        ordered_ids = list(ordered_ids)
        self._ensure_open()
        base = self._store.current_snapshot()
        _validate_permutation(base, ordered_ids)
        return self._commit(
            "reorder",
            lambda snapshot: _apply_order(snapshot.records, ordered_ids),
            base,
        )

    def insert(self, item: Dict[str, Any], at_position: Optional[int] = None) -> CommitResult:
        """Insert ``item`` (a dict with at least ``id``) at ``at_position``, clamped; default appends."""
        album_id = item.get("id")
        if not isinstance(album_id, str) or not album_id.strip():
            raise ValidationError("Album id must be a non-empty string")

        def build(snapshot: Snapshot) -> List[AlbumRecord]:
            if snapshot.get(album_id) is not None:
                raise ValidationError(f"Album {album_id!r} already exists")
            records = list(snapshot.records)
            index = len(records) if at_position is None else max(0, min(at_position, len(records)))
            records.insert(index, AlbumRecord.from_dict(item, index))
            return records

        return self._commit("insert", build)

    def remove(self, album_id: str) -> CommitResult:
        def build(snapshot: Snapshot) -> List[AlbumRecord]:
            if snapshot.get(album_id) is None:
                raise NotFoundError(f"Album {album_id!r} not found")
            return [r for r in snapshot.records if r.id != album_id]

        return self._commit("remove", build)

    def update(self, album_id: str, fields: Dict[str, Any]) -> CommitResult:
        """Merge metadata ``fields`` into an existing album. id and position are not editable."""
        fields = {k: v for k, v in fields.items() if k not in ("id", "position")}
        if not fields:
            raise ValidationError("No editable fields given")

        def build(snapshot: Snapshot) -> List[AlbumRecord]:
            existing = snapshot.get(album_id)
            if existing is None:
                raise NotFoundError(f"Album {album_id!r} not found")
            return [r.with_metadata(fields) if r.id == album_id else r for r in snapshot.records]

        return self._commit("update", build)

    def _ensure_open(self) -> None:
        if self._closed:
            raise UnavailableError("Album wall is shutting down; writes are not accepted")

    def _commit(self, op: str, build: Build, base: Optional[Snapshot] = None) -> CommitResult:
        self._ensure_open()
        snapshot = base if base is not None else self._store.current_snapshot()
        for attempt in range(1, self._max_attempts + 1):
            records = renumber(build(snapshot))
            try:
                committed = self._store.replace(
                    records,
                    expected_version=snapshot.version,
                    before_commit=self._persister.save,
                )
            except StaleSnapshotError as e:
                logger.info("%s: attempt %d/%d lost to a concurrent write (%s)", op, attempt, self._max_attempts, e)
                snapshot = self._store.current_snapshot()
                continue
            logger.info("%s: committed version %d after %d attempt(s)", op, committed.version, attempt)
            self._hub.publish(committed)
            return CommitResult(snapshot=committed, attempts=attempt)
        raise ConflictError(
            f"{op} gave up after {self._max_attempts} attempts; the wall kept changing"
        )
