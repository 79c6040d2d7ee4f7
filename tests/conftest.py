"""Pytest configuration and fixtures."""
import json
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from songwall.api.state import AppState, set_state
from songwall.core.album_store import AlbumStore
from songwall.core.mutation_applier import MutationApplier
from songwall.core.snapshot_persister import SnapshotPersister


def write_albums(path: Path, albums: list, version: int = 0) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"version": version, "albums": albums}))


class RecordingHub:
    """Stands in for BroadcastHub where only the published snapshots matter."""

    def __init__(self) -> None:
        self.published = []

    def publish(self, snapshot) -> None:
        self.published.append(snapshot)


@pytest.fixture
def albums_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "albums.json"


@pytest.fixture
def seed_ab(albums_path: Path) -> Path:
    write_albums(albums_path, [
        {"id": "a", "name": "Abbey Road", "artist": "The Beatles", "position": 0},
        {"id": "b", "name": "Blue", "artist": "Joni Mitchell", "position": 1},
    ])
    return albums_path


@pytest.fixture
def persister(albums_path: Path) -> SnapshotPersister:
    return SnapshotPersister(albums_path)


@pytest.fixture
def store(seed_ab: Path, persister: SnapshotPersister) -> AlbumStore:
    return AlbumStore(persister.load())


@pytest.fixture
def hub() -> RecordingHub:
    return RecordingHub()


@pytest.fixture
def applier(store: AlbumStore, persister: SnapshotPersister, hub: RecordingHub) -> MutationApplier:
    return MutationApplier(store, persister, hub, max_attempts=3)


@pytest.fixture
def app_state(seed_ab: Path) -> Generator[AppState, None, None]:
    state = AppState(albums_path=seed_ab, default_albums_path=None, observer_idle_timeout=300)
    set_state(state)
    yield state
    set_state(None)


@pytest.fixture
def client(app_state: AppState) -> Generator[TestClient, None, None]:
    """Synchronous test client that handles lifespan correctly."""
    from songwall.api.app import app

    with TestClient(app) as c:
        yield c
