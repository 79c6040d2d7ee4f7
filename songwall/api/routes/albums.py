"""Album wall reads and writes: list, get, insert, reorder, update, delete."""
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from songwall.api.state import AppState, get_state
from songwall.core.errors import SongWallError

router = APIRouter()


class AlbumBody(BaseModel):
    """New album. Any extra fields (name, artist, image, tracks...) are kept as-is."""
    model_config = ConfigDict(extra="allow")

    id: str
    position: Optional[int] = None


class ReorderBody(BaseModel):
    ids: Optional[List[str]] = None
    albums: Optional[List[Dict[str, Any]]] = None


def _http_error(e: SongWallError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_dict())


def _ids_from_albums(albums: List[Any]) -> List[str]:
    ids = []
    for a in albums:
        if not isinstance(a, dict) or not isinstance(a.get("id"), str):
            raise HTTPException(
                status_code=400,
                detail={"error": "ValidationError", "message": "Every album needs a string id"},
            )
        ids.append(a["id"])
    return ids


@router.get("/")
def list_albums(state: AppState = Depends(get_state)):
    """Current wall with its version."""
    return state.store.current_snapshot().to_dict()


@router.get("/{album_id}")
def get_album(album_id: str, state: AppState = Depends(get_state)):
    record = state.store.current_snapshot().get(album_id)
    if record is None:
        raise HTTPException(
            status_code=404,
            detail={"error": "NotFoundError", "message": f"Album {album_id!r} not found"},
        )
    return record.to_dict()


@router.post("/")
def create_album(body: AlbumBody, state: AppState = Depends(get_state)):
    """Insert an album at ``position`` (clamped to the wall), or append when omitted."""
    item = body.model_dump(exclude={"position"})
    try:
        result = state.applier.insert(item, at_position=body.position)
    except SongWallError as e:
        raise _http_error(e)
    return {
        "ok": True,
        "version": result.snapshot.version,
        "album": result.snapshot.get(body.id).to_dict(),
    }


@router.post("/reorder")
def reorder_albums(
    body: Union[ReorderBody, List[Dict[str, Any]]] = Body(...),
    state: AppState = Depends(get_state),
):
    """Reorder the whole wall. Accepts {"ids": [...]}, {"albums": [...]} or a bare album list."""
    if isinstance(body, list):
        ids = _ids_from_albums(body)
    elif body.ids is not None:
        ids = body.ids
    elif body.albums is not None:
        ids = _ids_from_albums(body.albums)
    else:
        raise HTTPException(
            status_code=400,
            detail={"error": "ValidationError", "message": "Provide ids or albums"},
        )
    try:
        result = state.applier.reorder(ids)
    except SongWallError as e:
        raise _http_error(e)
    return {"ok": True, "version": result.snapshot.version}


@router.patch("/{album_id}")
def update_album(
    album_id: str,
    fields: Dict[str, Any] = Body(...),
    state: AppState = Depends(get_state),
):
    """Merge metadata into an album. id and position cannot be changed here."""
    try:
        result = state.applier.update(album_id, fields)
    except SongWallError as e:
        raise _http_error(e)
    return {
        "ok": True,
        "version": result.snapshot.version,
        "album": result.snapshot.get(album_id).to_dict(),
    }


@router.delete("/{album_id}")
def delete_album(album_id: str, state: AppState = Depends(get_state)):
    try:
        result = state.applier.remove(album_id)
    except SongWallError as e:
        raise _http_error(e)
    return {"ok": True, "version": result.snapshot.version}
