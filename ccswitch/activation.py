"""
ccswitch.activation
Project the active profile onto the host: persistent environment variables
on Windows (setx), ~/.claude/settings.json everywhere else.
"""

import os
import logging
import platform
import subprocess
from typing import Any, Callable, Dict, List, Optional

from .storage import (
    atomic_read_bytes,
    atomic_write_bytes,
    default_settings_path,
    dump_json_bytes,
    ensure_dir_exists,
    read_json_bytes,
)

TOKEN_VAR = "ANTHROPIC_AUTH_TOKEN"
BASE_URL_VAR = "ANTHROPIC_BASE_URL"

logger = logging.getLogger(__name__)


class ActivationError(RuntimeError):
    pass


def is_windows() -> bool:
    return platform.system() == "Windows"

def run(cmd: List[str]) -> subprocess.CompletedProcess:
    kwargs: Dict[str, Any] = dict(stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True, check=True)
    if is_windows():
        kwargs["creationflags"] = 0x08000000  # CREATE_NO_WINDOW
    return subprocess.run(cmd, **kwargs)


class Activator:
    """
    Writes a profile's base URL and token to one configuration surface.
    Stateless between calls; applying the same profile twice is a no-op.
    """

    def __init__(self, token_var: str = TOKEN_VAR, base_url_var: str = BASE_URL_VAR):
        self.token_var = token_var
        self.base_url_var = base_url_var

    def apply(self, profile) -> None:
        if profile is None:
            raise ValueError("profile is required")
        self._apply(profile)

    def _apply(self, profile) -> None:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError


class EnvironmentActivator(Activator):
    """
    Persistent user environment variables via setx. Only processes started
    afterwards see the new values. No rollback if the second variable fails.
    """

    def __init__(self, runner: Optional[Callable[[List[str]], Any]] = None, **kwargs):
        super().__init__(**kwargs)
        self.runner = runner or run

    def _set(self, var: str, value: str) -> None:
        # argv holds the value; neither the message nor the cause may carry it
        try:
            self.runner(["setx", var, value])
        except subprocess.CalledProcessError as e:
            raise ActivationError(f"failed to set {var}: exit status {e.returncode}") from None
        except OSError as e:
            raise ActivationError(f"failed to set {var}: {e.strerror or type(e).__name__}") from None

    def _apply(self, profile) -> None:
        self._set(self.token_var, profile.token)
        self._set(self.base_url_var, profile.base_url)
        logger.info("set %s and %s for profile %r", self.token_var, self.base_url_var, profile.name)

    def describe(self) -> str:
        return (
            f"Environment variables updated:\n- {self.token_var}\n- {self.base_url_var}\n\n"
            "Restart running applications for the change to take effect."
        )


class SettingsFileActivator(Activator):
    """
    Merge the two owned keys into the "env" mapping of a JSON settings
    document, keeping every other key. Unparsable content is replaced.
    """

    def __init__(self, path: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._path = path

    @property
    def path(self) -> str:
        if self._path is None:
            try:
                self._path = default_settings_path()
            except OSError as e:
                raise ActivationError(f"failed to get home directory: {e}") from e
        return self._path

    def _read(self, path: str) -> Dict[str, Any]:
        if not os.path.exists(path):
            return {}
        try:
            doc = read_json_bytes(atomic_read_bytes(path))
        except (OSError, ValueError) as e:
            logger.warning("discarding unreadable settings file %s: %s", path, e)
            return {}
        if not isinstance(doc, dict):
            logger.warning("discarding settings file %s: top level is not an object", path)
            return {}
        return doc

    def _apply(self, profile) -> None:
        path = self.path
        try:
            ensure_dir_exists(path, mode=0o755)
        except OSError as e:
            raise ActivationError(f"failed to create {os.path.dirname(path)}: {e}") from e

        doc = self._read(path)
        env = doc.get("env")
        if not isinstance(env, dict):
            env = {}
        env[self.token_var] = profile.token
        env[self.base_url_var] = profile.base_url
        doc["env"] = env

        try:
            data = dump_json_bytes(doc)
        except (TypeError, ValueError) as e:
            raise ActivationError(f"failed to serialize settings: {e}") from e
        try:
            atomic_write_bytes(path, data)
        except OSError as e:
            raise ActivationError(f"failed to write settings file {path}: {e}") from e
        logger.info("wrote profile %r to %s", profile.name, path)

    def describe(self) -> str:
        return f"Configuration written to {self.path}"


def default_activator(cfg: Optional[Dict[str, Any]] = None) -> Activator:
    """
    Pick the activator for this host once. cfg is a preferences dict
    (see ccswitch.config); "target" may force "env" or "settings".
    """
    cfg = cfg or {}
    target = cfg.get("target") or "auto"
    names = {
        "token_var": cfg.get("token_var") or TOKEN_VAR,
        "base_url_var": cfg.get("base_url_var") or BASE_URL_VAR,
    }
    if target == "auto":
        target = "env" if is_windows() else "settings"
    if target == "env":
        return EnvironmentActivator(**names)
    if target == "settings":
        return SettingsFileActivator(cfg.get("settings_path"), **names)
    raise ValueError(f"unknown activation target: {target}")
