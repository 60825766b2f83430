import json
import logging
import os
import sys
from typing import Any, Dict

# Single source of truth for persisted settings
SETTINGS_PATH = ".diskman/settings.json"

DEFAULT_PORT = 3000
DEFAULT_TIMEOUT = 30.0

LOG_FORMAT = "%(asctime)s | %(filename)s:%(lineno)s \t [%(levelname)s] %(message)s"


def configure_logging() -> None:
    level_name = os.getenv("DISKMAN_LOG_LEVEL", "WARNING").strip().upper()
    level = getattr(logging, level_name, logging.WARNING)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)


def default_base_url() -> str:
    # The Android emulator reaches the host loopback through 10.0.2.2
    if sys.platform == "android":
        return f"http://10.0.2.2:{DEFAULT_PORT}"
    return f"http://127.0.0.1:{DEFAULT_PORT}"


def read_settings() -> Dict[str, Any]:
    try:
        if os.path.exists(SETTINGS_PATH):
            with open(SETTINGS_PATH, "r") as f:
                data = json.load(f)
                if isinstance(data, dict):
                    return data
    except Exception:
        pass
    return {}


def write_settings(data: Dict[str, Any]) -> None:
    os.makedirs(os.path.dirname(SETTINGS_PATH) or ".", exist_ok=True)
    with open(SETTINGS_PATH, "w") as f:
        json.dump(data, f)


def save_base_url(base_url: str) -> None:
    # Read-modify-write to preserve other fields
    data = read_settings()
    data["base_url"] = base_url.strip()
    write_settings(data)


def resolve_base_url() -> str:
    env = os.getenv("DISKMAN_BASE_URL", "").strip()
    if env:
        return env
    saved = str(read_settings().get("base_url", "") or "").strip()
    return saved or default_base_url()


def resolve_timeout() -> float:
    raw = os.getenv("DISKMAN_HTTP_TIMEOUT")
    try:
        timeout = float(raw) if raw else DEFAULT_TIMEOUT
    except ValueError:
        timeout = DEFAULT_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_TIMEOUT
