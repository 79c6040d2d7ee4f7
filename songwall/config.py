"""Configuration: env, data paths, API host/port, commit retry budget."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Base paths (project root = parent of songwall package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so SONGWALL_* overrides are set
load_dotenv(BASE_DIR / ".env")

DATA_DIR = Path(os.getenv("SONGWALL_DATA_DIR", str(BASE_DIR / "data")))
ALBUMS_PATH = Path(os.getenv("SONGWALL_ALBUMS_PATH", str(DATA_DIR / "albums.json")))
# Seed collection used when albums.json has never been written
DEFAULT_ALBUMS_PATH = Path(
    os.getenv("SONGWALL_DEFAULT_ALBUMS_PATH", str(DATA_DIR / "albums.example.json"))
)

# API
API_HOST = os.getenv("SONGWALL_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("SONGWALL_API_PORT", "8000"))

# Optimistic commits: total attempts before a write gives up with ConflictError
MAX_COMMIT_ATTEMPTS = int(os.getenv("SONGWALL_MAX_COMMIT_ATTEMPTS", "3"))

# Live observers that send nothing (not even a ping) for this long are disconnected; 0 disables
OBSERVER_IDLE_TIMEOUT_SEC = float(os.getenv("SONGWALL_OBSERVER_IDLE_TIMEOUT", "300"))
OBSERVER_SWEEP_INTERVAL_SEC = float(os.getenv("SONGWALL_OBSERVER_SWEEP_INTERVAL", "60"))

LOG_LEVEL = os.getenv("SONGWALL_LOG_LEVEL", "INFO").upper()


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
