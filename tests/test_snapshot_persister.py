"""Tests for SnapshotPersister: tolerant load, atomic save, passthrough fields."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import write_albums
from songwall.core.errors import PersistenceError
from songwall.core.snapshot_persister import SnapshotPersister
from songwall.models.album import AlbumRecord, Snapshot


def test_missing_file_loads_empty(tmp_path: Path) -> None:
    snap = SnapshotPersister(tmp_path / "albums.json").load()
    assert snap == Snapshot(version=0)


def test_corrupt_file_loads_empty(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "albums.json"
    path.write_text("{not json")
    snap = SnapshotPersister(path).load()
    assert snap.version == 0
    assert snap.records == ()
    assert "unreadable" in caplog.text


def test_unexpected_shape_loads_empty(tmp_path: Path) -> None:
    path = tmp_path / "albums.json"
    path.write_text(json.dumps({"records": "nope"}))
    assert SnapshotPersister(path).load().records == ()


def test_load_sorts_by_position_and_renumbers(tmp_path: Path) -> None:
    path = tmp_path / "albums.json"
    write_albums(path, [
        {"id": "c", "position": 10},
        {"id": "a", "position": 2},
        {"id": "b", "position": 2},
    ], version=7)
    snap = SnapshotPersister(path).load()
    assert snap.version == 7
    assert snap.ids() == ("a", "b", "c")
    assert [r.position for r in snap.records] == [0, 1, 2]


def test_load_accepts_bare_list_and_skips_bad_entries(tmp_path: Path) -> None:
    path = tmp_path / "albums.json"
    path.write_text(json.dumps([
        {"id": "a", "name": "First"},
        "junk",
        {"name": "no id"},
        {"id": "a", "name": "Duplicate"},
        {"id": "b"},
    ]))
    snap = SnapshotPersister(path).load()
    assert snap.ids() == ("a", "b")
    assert snap.get("a").metadata == {"name": "First"}


def test_load_falls_back_to_default_file(tmp_path: Path) -> None:
    default = tmp_path / "albums.example.json"
    default.write_text(json.dumps([{"id": "seed", "position": 0}]))
    snap = SnapshotPersister(tmp_path / "albums.json", default).load()
    assert snap.ids() == ("seed",)


def test_save_then_load_preserves_unknown_fields(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "albums.json"
    persister = SnapshotPersister(path)
    record = AlbumRecord(
        id="x",
        position=0,
        metadata={"name": "Kind of Blue", "qr": {"scans": 3}, "tracks": [{"id": "t1"}]},
    )
    persister.save(Snapshot(version=3, records=(record,)))

    stored = json.loads(path.read_text())
    assert stored["version"] == 3
    assert stored["albums"] == [
        {"id": "x", "name": "Kind of Blue", "qr": {"scans": 3}, "tracks": [{"id": "t1"}], "position": 0}
    ]
    assert persister.load() == Snapshot(version=3, records=(record,))
    assert [p.name for p in path.parent.iterdir()] == ["albums.json"]


def test_save_failure_raises_persistence_error_and_keeps_old_file(tmp_path: Path) -> None:
    path = tmp_path / "albums.json"
    write_albums(path, [{"id": "a", "position": 0}], version=1)
    before = path.read_bytes()
    bad = AlbumRecord(id="b", position=0, metadata={"cover": object()})

    with pytest.raises(PersistenceError):
        SnapshotPersister(path).save(Snapshot(version=2, records=(bad,)))
    assert path.read_bytes() == before


def test_save_into_unwritable_location_raises_persistence_error(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("")
    with pytest.raises(PersistenceError):
        SnapshotPersister(blocker / "albums.json").save(Snapshot(version=1))
