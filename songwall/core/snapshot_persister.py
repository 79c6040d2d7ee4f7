"""Persist and load the album wall (JSON)."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional

from songwall.core.errors import PersistenceError
from songwall.models.album import AlbumRecord, Snapshot

logger = logging.getLogger(__name__)


class SnapshotPersister:
    """Writes each accepted Snapshot to ``path`` and reads it back at startup.

    ``default_path`` is an optional seed collection (e.g. albums.example.json)
    read only when ``path`` does not exist yet.
    """

    def __init__(self, path: Path, default_path: Optional[Path] = None) -> None:
        self.path = Path(path)
        self.default_path = Path(default_path) if default_path is not None else None

    def save(self, snapshot: Snapshot) -> None:
        """Replace the stored document with ``snapshot``. Raises PersistenceError."""
        try:
            payload = json.dumps(snapshot.to_dict(), indent=2)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error("Persist: failed to save version %d to %s: %s", snapshot.version, self.path, e)
            raise PersistenceError(f"Could not save albums: {e}") from e
        logger.debug("Persist: saved version %d to %s", snapshot.version, self.path)

    def load(self) -> Snapshot:
        """Load the last saved Snapshot, or an empty one if nothing usable is stored."""
        source = self.path
        if not source.exists():
            if self.default_path is None or not self.default_path.exists():
                logger.info("Persist: no stored albums at %s, starting empty", self.path)
                return Snapshot(version=0)
            source = self.default_path
            logger.info("Persist: %s missing, seeding from %s", self.path, source)
        try:
            data = json.loads(source.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning("Persist: unreadable albums file %s (%s), starting empty", source, e)
            return Snapshot(version=0)

        if isinstance(data, list):
            items, version = data, 0
        elif isinstance(data, dict) and isinstance(data.get("albums"), list):
            items = data["albums"]
            version = data.get("version")
            if not isinstance(version, int) or isinstance(version, bool) or version < 0:
                version = 0
        else:
            logger.warning("Persist: unexpected document shape in %s, starting empty", source)
            return Snapshot(version=0)

        snapshot = Snapshot(version=version, records=_parse_records(items, source))
        logger.info("Persist: loaded %d albums (version %d) from %s", len(snapshot), version, source)
        return snapshot


def _parse_records(items: List[Any], source: Path) -> tuple:
    seen = set()
    keyed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or not isinstance(item.get("id"), str) or not item["id"]:
            logger.warning("Persist: skipping malformed entry #%d in %s", index, source)
            continue
        if item["id"] in seen:
            logger.warning("Persist: skipping duplicate id %r in %s", item["id"], source)
            continue
        seen.add(item["id"])
        pos = item.get("position")
        if not isinstance(pos, int) or isinstance(pos, bool):
            pos = index
        keyed.append(((pos, index), item))
    keyed.sort(key=lambda pair: pair[0])
    return tuple(AlbumRecord.from_dict(item, i) for i, (_, item) in enumerate(keyed))
