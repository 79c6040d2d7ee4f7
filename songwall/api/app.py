"""FastAPI app, CORS, route registration, and the idle-observer sweep."""
import logging
import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from songwall.config import LOG_LEVEL, OBSERVER_SWEEP_INTERVAL_SEC

# Configure logging in the worker process (so store/hub INFO logs are visible with uvicorn --reload)
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(levelname)s: %(name)s: %(message)s",
)

from songwall.api.state import AppState, get_state
from songwall.config import ensure_data_dir

# Import routes after state to avoid circular imports
from songwall.api.routes import albums, live

__all__ = ["app", "AppState", "get_state"]


def _observer_sweep_loop(state: AppState, stop_event: threading.Event) -> None:
    """Background loop: disconnect observers that have gone quiet."""
    while not stop_event.wait(timeout=OBSERVER_SWEEP_INTERVAL_SEC):
        try:
            state.reap_idle_observers()
        except Exception as e:
            logging.getLogger(__name__).warning("Observer sweep: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_data_dir()
    state = get_state()
    state.start()

    _sweep_stop = threading.Event()
    _sweep_thread = None
    if state.observer_idle_timeout > 0:
        _sweep_thread = threading.Thread(
            target=_observer_sweep_loop,
            args=(state, _sweep_stop),
            daemon=True,
        )
        _sweep_thread.start()
        logging.getLogger(__name__).info(
            "Observer sweep started (idle timeout %.0fs, every %.0fs)",
            state.observer_idle_timeout,
            OBSERVER_SWEEP_INTERVAL_SEC,
        )

    yield

    _sweep_stop.set()
    if _sweep_thread is not None:
        _sweep_thread.join(timeout=5.0)
    state.shutdown()


app = FastAPI(
    title="SongWall API",
    description="Shared album wall with live ordering updates",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(live.router, prefix="/api/albums", tags=["live"])
app.include_router(albums.router, prefix="/api/albums", tags=["albums"])
