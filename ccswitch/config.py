# ccswitch/config.py
"""
Preferences for ccswitch itself (not the profiles).
Saved as JSON next to the profile collection:
~/.claude-code-config-switcher/config.json on every platform
"""

import os
import json
import logging
from typing import Dict, Any, Optional

from rich.logging import RichHandler

from .storage import app_dir, atomic_write_bytes, dump_json_bytes

DEFAULTS: Dict[str, Any] = {
    "profiles_path": None,  # None -> storage.default_profiles_path()
    "settings_path": None,  # None -> storage.default_settings_path()
    "target": "auto",       # auto | env | settings
    "token_var": "ANTHROPIC_AUTH_TOKEN",
    "base_url_var": "ANTHROPIC_BASE_URL",
    "log_level": "WARNING",
}

logger = logging.getLogger(__name__)

def config_path() -> str:
    return os.path.join(app_dir(), "config.json")

def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    p = path or config_path()
    if not os.path.exists(p):
        return DEFAULTS.copy()
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = json.load(f)
        # merge defaults
        out = DEFAULTS.copy()
        out.update(data or {})
        return out
    except (OSError, ValueError, TypeError) as e:
        logger.warning("ignoring unreadable preferences at %s: %s", p, e)
        return DEFAULTS.copy()

def save_config(cfg: Dict[str, Any], path: Optional[str] = None) -> None:
    atomic_write_bytes(path or config_path(), dump_json_bytes(cfg))

def setup_logging(level: str = "WARNING") -> logging.Logger:
    """
    Attach a rich handler to the package logger. Safe to call more than once.
    """
    root = logging.getLogger("ccswitch")
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(show_path=False, rich_tracebacks=True))
    root.setLevel(getattr(logging, str(level).upper(), logging.WARNING))
    return root
