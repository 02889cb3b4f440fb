import os
import json
from typing import Any

APP_DIR_NAME = ".claude-code-config-switcher"
PROFILES_FILE_NAME = "configs.json"

def ensure_dir_exists(path: str, mode: int = 0o700) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, mode=mode, exist_ok=True)

def atomic_write_bytes(path: str, data: bytes) -> None:
    """
    Atomically write bytes to 'path' by writing to a temp file in the same
    directory and renaming it over the target.
    """
    ensure_dir_exists(path)
    tmp = path + ".tmp"
    try:
        with open(tmp, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise

def atomic_read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def app_dir() -> str:
    """
    Per-user directory holding the profile collection and preferences.
    Same location on every platform: ~/.claude-code-config-switcher
    """
    home = os.path.expanduser("~")
    if home == "~":
        raise OSError("could not resolve the home directory")
    return os.path.join(home, APP_DIR_NAME)

def default_profiles_path() -> str:
    return os.path.join(app_dir(), PROFILES_FILE_NAME)

def default_settings_path() -> str:
    """
    Settings document read by Claude Code on macOS/Linux.
    """
    home = os.path.expanduser("~")
    if home == "~":
        raise OSError("could not resolve the home directory")
    return os.path.join(home, ".claude", "settings.json")

def read_json_bytes(b: bytes) -> Any:
    return json.loads(b.decode("utf-8"))

def dump_json_bytes(obj: Any) -> bytes:
    return json.dumps(obj, ensure_ascii=False, indent=2).encode("utf-8")
