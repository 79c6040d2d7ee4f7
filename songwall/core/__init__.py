"""Core services: album store, snapshot persistence, mutations, broadcast."""
from songwall.core.album_store import AlbumStore
from songwall.core.broadcast_hub import BroadcastHub
from songwall.core.mutation_applier import MutationApplier
from songwall.core.snapshot_persister import SnapshotPersister

__all__ = ["AlbumStore", "BroadcastHub", "MutationApplier", "SnapshotPersister"]
