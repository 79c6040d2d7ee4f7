"""Live album feed over WebSocket, plus observer stats."""
import asyncio
import json
import logging
import time

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from songwall.api.state import AppState, get_state
from songwall.core.broadcast_hub import ObserverHandle
from songwall.models.album import Snapshot

logger = logging.getLogger(__name__)

router = APIRouter()

ROLES = ("wall", "admin")


def _albums_message(snapshot: Snapshot) -> dict:
    return {
        "type": "albums",
        **snapshot.to_dict(),
        "timestamp": int(time.time() * 1000),
    }


def _message_type(raw: str) -> str:
    """Clients send either a bare word ("ping") or {"type": "ping", ...}."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return raw.strip().lower()
    if isinstance(data, dict) and isinstance(data.get("type"), str):
        return data["type"].lower()
    return ""


async def _pump(websocket: WebSocket, handle: ObserverHandle) -> None:
    """Send each snapshot the hub hands this observer until it is disconnected."""
    while True:
        snapshot = await handle.next_snapshot()
        if snapshot is None:
            return
        await websocket.send_json(_albums_message(snapshot))


async def _listen(websocket: WebSocket, handle: ObserverHandle, state: AppState) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        handle.touch()
        raw = message.get("text")
        if raw is None:
            logger.debug("Observer %s: ignoring non-text frame", handle.observer_id)
            continue
        kind = _message_type(raw)
        if kind == "ping":
            await websocket.send_json({"type": "pong"})
        elif kind == "refresh":
            handle.offer(state.store.current_snapshot(), force=True)
        else:
            logger.debug("Observer %s: ignoring message %r", handle.observer_id, raw[:80])


@router.websocket("/live")
async def album_feed(
    websocket: WebSocket,
    role: str = Query("wall"),
    state: AppState = Depends(get_state),
):
    """Current wall on connect, then the full wall after every accepted change.

    ``role`` is ``wall`` (display screens, the default) or ``admin`` (the
    editor); it only affects stats. Send ``ping`` now and then: observers
    silent for longer than the idle timeout are disconnected.
    """
    if role not in ROLES:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await websocket.accept()
    handle = state.hub.subscribe(role=role)
    pump = asyncio.create_task(_pump(websocket, handle))
    listen = asyncio.create_task(_listen(websocket, handle, state))
    tasks = (pump, listen)
    done = set()
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            e = task.exception()
            if e is not None and not isinstance(e, WebSocketDisconnect):
                logger.warning("Observer %s: connection error: %s", handle.observer_id, e)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        state.hub.unsubscribe(handle)
    if pump in done and pump.exception() is None:
        # Hub dropped us (shutdown or idle); tell the client.
        try:
            await websocket.close()
        except RuntimeError:
            pass


@router.get("/live/stats")
def live_stats(state: AppState = Depends(get_state)):
    """Observer counts per role, last client activity, and server uptime."""
    by_role = state.hub.count_by_role()
    return {
        "observers": state.hub.observer_count,
        "wall_observers": by_role.get("wall", 0),
        "admin_observers": by_role.get("admin", 0),
        "last_activity": state.hub.last_activity_at(),
        "version": state.store.version,
        "uptime_sec": round(state.uptime_sec(), 1),
        "server_start_time": state.started_at.isoformat() if state.started_at else None,
    }
