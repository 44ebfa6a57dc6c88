"""Load environment configuration and resolve project paths."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from jobswipe.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
DATA_DIR: Path = Path(os.environ.get("JOBSWIPE_DATA_DIR") or ROOT_DIR / "data")
PROFILES_PATH: Path = Path(os.environ.get("JOBSWIPE_PROFILES") or CONFIG_DIR / "profiles.yaml")

DEFAULT_API_URL = "http://127.0.0.1:8000"
DEFAULT_PROVIDER_ORDER = "openrouter,gigachat,gemini,groq"


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def get_float(key: str, default: float) -> float:
    raw = get_env(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring non-numeric %s=%r, using %s", key, raw, default)
        return default


def get_int(key: str, default: int) -> int:
    raw = get_env(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("Ignoring non-integer %s=%r, using %s", key, raw, default)
        return default


def get_list(key: str, default: str = "") -> list[str]:
    """Comma-separated env value as a list of lowercase, non-empty items."""
    raw = get_env(key, default)
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


def api_url() -> str:
    return get_env("JOBSWIPE_API_URL", DEFAULT_API_URL).rstrip("/")


def ensure_dirs() -> None:
    for d in (DATA_DIR, CONFIG_DIR):
        d.mkdir(parents=True, exist_ok=True)
