"""Data models for album records and wall snapshots."""
from songwall.models.album import AlbumRecord, Snapshot

__all__ = [
    "AlbumRecord",
    "Snapshot",
]
