"""Tests for the album wall HTTP routes."""
from __future__ import annotations

import json

from fastapi.testclient import TestClient


def test_list_albums_returns_snapshot(client: TestClient) -> None:
    response = client.get("/api/albums/")
    assert response.status_code == 200
    body = response.json()
    assert body["version"] == 0
    assert [(a["id"], a["position"]) for a in body["albums"]] == [("a", 0), ("b", 1)]
    assert body["albums"][0]["artist"] == "The Beatles"


def test_get_album_and_missing_album(client: TestClient) -> None:
    assert client.get("/api/albums/b").json()["name"] == "Blue"
    response = client.get("/api/albums/nope")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "NotFoundError"


def test_reorder_by_ids(client: TestClient, seed_ab) -> None:
    response = client.post("/api/albums/reorder", json={"ids": ["b", "a"]})
    assert response.status_code == 200
    assert response.json() == {"ok": True, "version": 1}
    albums = client.get("/api/albums/").json()["albums"]
    assert [(a["id"], a["position"]) for a in albums] == [("b", 0), ("a", 1)]
    stored = json.loads(seed_ab.read_text())
    assert stored["version"] == 1
    assert [a["id"] for a in stored["albums"]] == ["b", "a"]


def test_reorder_accepts_bare_album_list(client: TestClient) -> None:
    albums = client.get("/api/albums/").json()["albums"]
    response = client.post("/api/albums/reorder", json=list(reversed(albums)))
    assert response.status_code == 200
    assert client.get("/api/albums/").json()["albums"][0]["id"] == "b"


def test_reorder_accepts_albums_key(client: TestClient) -> None:
    response = client.post("/api/albums/reorder", json={"albums": [{"id": "b"}, {"id": "a"}]})
    assert response.status_code == 200


def test_reorder_with_unknown_id_is_400_and_unchanged(client: TestClient, seed_ab) -> None:
    before = seed_ab.read_bytes()
    response = client.post("/api/albums/reorder", json={"ids": ["a", "b", "z"]})
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "ValidationError"
    assert seed_ab.read_bytes() == before
    assert client.get("/api/albums/").json()["version"] == 0


def test_reorder_without_ids_or_albums_is_400(client: TestClient) -> None:
    assert client.post("/api/albums/reorder", json={}).status_code == 400
    assert client.post("/api/albums/reorder", json=[{"name": "no id"}]).status_code == 400


def test_create_album_keeps_extra_fields(client: TestClient) -> None:
    response = client.post(
        "/api/albums/",
        json={"id": "c", "name": "Currents", "image": "c.jpg", "tracks": [], "position": 0},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["version"] == 1
    assert body["album"] == {"id": "c", "name": "Currents", "image": "c.jpg", "tracks": [], "position": 0}
    ids = [a["id"] for a in client.get("/api/albums/").json()["albums"]]
    assert ids == ["c", "a", "b"]


def test_create_duplicate_album_is_400(client: TestClient) -> None:
    response = client.post("/api/albums/", json={"id": "a"})
    assert response.status_code == 400


def test_create_album_requires_id(client: TestClient) -> None:
    assert client.post("/api/albums/", json={"name": "anonymous"}).status_code == 422


def test_update_album(client: TestClient) -> None:
    response = client.patch("/api/albums/a", json={"image": "abbey.jpg"})
    assert response.status_code == 200
    album = response.json()["album"]
    assert album["image"] == "abbey.jpg"
    assert album["name"] == "Abbey Road"
    assert client.patch("/api/albums/zzz", json={"image": "x"}).status_code == 404


def test_delete_album(client: TestClient) -> None:
    response = client.delete("/api/albums/a")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "version": 1}
    albums = client.get("/api/albums/").json()["albums"]
    assert [(a["id"], a["position"]) for a in albums] == [("b", 0)]


def test_delete_missing_album_is_404(client: TestClient) -> None:
    response = client.delete("/api/albums/x")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "NotFoundError"


def test_writes_after_shutdown_are_503(client: TestClient, app_state) -> None:
    app_state.shutdown()
    response = client.post("/api/albums/reorder", json={"ids": ["b", "a"]})
    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "UnavailableError"
