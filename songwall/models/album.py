"""Album records and versioned snapshots of the wall."""
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class AlbumRecord:
    """One album on the wall. Everything except id/position is opaque metadata.

    ``metadata`` is a read-only view over a private copy, so a published
    snapshot cannot be edited through it. Nested values are not copied;
    treat them as read-only too.
    """
    id: str
    position: int
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def from_dict(cls, item: Dict[str, Any], position: int) -> "AlbumRecord":
        metadata = {k: v for k, v in item.items() if k not in ("id", "position")}
        return cls(id=item["id"], position=position, metadata=metadata)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.metadata, "position": self.position}

    def with_metadata(self, fields: Dict[str, Any]) -> "AlbumRecord":
        merged = dict(self.metadata)
        merged.update({k: v for k, v in fields.items() if k not in ("id", "position")})
        return replace(self, metadata=merged)


def renumber(records: Iterable[AlbumRecord]) -> Tuple[AlbumRecord, ...]:
    """Assign contiguous positions 0..N-1 in iteration order."""
    return tuple(
        r if r.position == i else replace(r, position=i)
        for i, r in enumerate(records)
    )


@dataclass(frozen=True)
class Snapshot:
    """Full wall at one instant. Never edited after it is published."""
    version: int
    records: Tuple[AlbumRecord, ...] = ()

    def ids(self) -> Tuple[str, ...]:
        return tuple(r.id for r in self.records)

    def get(self, album_id: str) -> Optional[AlbumRecord]:
        for r in self.records:
            if r.id == album_id:
                return r
        return None

    def __len__(self) -> int:
        return len(self.records)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "albums": [r.to_dict() for r in self.records],
        }
