"""Environment, settings file and platform-aware defaults."""

import json
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

DEFAULT_PORT = 23987
DEFAULT_HOST = "127.0.0.1"
DEFAULT_POLL_INTERVAL = 1.0
KEEPALIVE_INTERVAL = 30.0
SNAPSHOT_INTERVAL = 30.0

SETTINGS_FILE = "settings.json"
SNAPSHOT_FILE = "pending.json"


def get_state_dir() -> Path:
    """Return the directory holding settings and the pending snapshot."""
    env = os.environ.get("CHAT_HITL_STATE_DIR")
    if env:
        return Path(env)

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "chat-hitl"
    elif sys.platform == "win32":
        return Path(os.environ.get("APPDATA", "")) / "chat-hitl"
    else:  # Linux
        return Path.home() / ".local" / "state" / "chat-hitl"


def get_settings_path() -> Path:
    return get_state_dir() / SETTINGS_FILE


def get_snapshot_path() -> Path:
    return get_state_dir() / SNAPSHOT_FILE


def load_settings() -> dict:
    """Read the settings file, returning {} when missing or unreadable."""
    path = get_settings_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to read settings %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def save_settings(settings: dict) -> Path:
    path = get_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings, indent=2), encoding="utf-8")
    return path


def get_port() -> int:
    """Return the coordination port: environment, then settings, then default."""
    env = os.environ.get("CHAT_HITL_PORT")
    if env:
        return int(env)

    port = load_settings().get("serverPort")
    if isinstance(port, int) and 0 < port < 65536:
        return port
    return DEFAULT_PORT


def get_host() -> str:
    return os.environ.get("CHAT_HITL_HOST") or DEFAULT_HOST


def get_poll_interval() -> float:
    env = os.environ.get("CHAT_HITL_POLL_INTERVAL")
    if env:
        return float(env)
    return DEFAULT_POLL_INTERVAL


def base_url(port: int, host: str | None = None) -> str:
    host = host or get_host()
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    return f"http://{host}:{port}"
