"""
ccswitch.profiles
JSON-backed list of API profiles with a single active entry.
"""

import os
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from .activation import Activator, default_activator
from .storage import (
    atomic_read_bytes,
    atomic_write_bytes,
    default_profiles_path,
    dump_json_bytes,
    ensure_dir_exists,
    read_json_bytes,
)

logger = logging.getLogger(__name__)


class ProfileIndexError(IndexError):
    pass


class ActiveProfileError(ValueError):
    pass


@dataclass
class Profile:
    name: str
    base_url: str
    token: str
    is_active: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "base_url": self.base_url,
            "token": self.token,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        """
        Build a profile from one stored record. Raises ValueError for a
        record that is not an object or has fields of the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError(f"profile record must be an object, got {type(data).__name__}")
        for key in ("name", "base_url", "token"):
            if not isinstance(data.get(key, ""), str):
                raise ValueError(f"profile field {key!r} must be a string")
        if not isinstance(data.get("id") or "", str):
            raise ValueError("profile field 'id' must be a string")
        if not isinstance(data.get("is_active", False), bool):
            raise ValueError("profile field 'is_active' must be true or false")
        p = cls(
            name=data.get("name", ""),
            base_url=data.get("base_url", ""),
            token=data.get("token", ""),
            is_active=data.get("is_active", False),
        )
        # files written before ids existed keep the generated one
        if data.get("id"):
            p.id = data["id"]
        return p


def validate_fields(name: str, base_url: str, token: str) -> None:
    if not all(isinstance(v, str) and v.strip() for v in (name, base_url, token)):
        raise ValueError("All fields are required")

def mask_token(token: str) -> str:
    if len(token) <= 8:
        return "****"
    return token[:4] + "****" + token[-4:]


class ProfileStore:
    """
    Owns the profile collection. Every mutation rewrites the whole file
    before returning; switch and edit of the active profile also push the
    profile through the activator.

    Profiles handed out are copies, mutate them through the store.
    """

    def __init__(self, path: Optional[str] = None, activator: Optional[Activator] = None):
        self.path = path or default_profiles_path()
        self.activator = activator if activator is not None else default_activator()
        self._lock = threading.RLock()
        self._profiles: List[Profile] = []
        ensure_dir_exists(self.path)
        self.reload()

    def reload(self) -> None:
        """
        Re-read the collection. A missing file means no profiles; anything
        else that goes wrong (I/O, bad JSON) is raised.
        """
        with self._lock:
            if not os.path.exists(self.path):
                self._profiles = []
                return
            data = read_json_bytes(atomic_read_bytes(self.path))
            if not isinstance(data, list):
                raise ValueError(f"{self.path}: expected a list of profiles")
            profiles = []
            for i, item in enumerate(data):
                try:
                    profiles.append(Profile.from_dict(item))
                except ValueError as e:
                    raise ValueError(f"{self.path}: record {i}: {e}") from e
            self._profiles = profiles

    def _save(self) -> None:
        atomic_write_bytes(self.path, dump_json_bytes([p.to_dict() for p in self._profiles]))

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self._profiles):
            raise ProfileIndexError("invalid profile index")

    @contextmanager
    def locked(self):
        """
        Hold the store lock across several calls, e.g. an id lookup and the
        mutation that uses the index it returned.
        """
        with self._lock:
            yield self

    def __len__(self) -> int:
        return len(self._profiles)

    def profiles(self) -> List[Profile]:
        with self._lock:
            return [replace(p) for p in self._profiles]

    def get(self, index: int) -> Profile:
        with self._lock:
            self._check_index(index)
            return replace(self._profiles[index])

    def index_of(self, profile_id: str) -> int:
        with self._lock:
            for i, p in enumerate(self._profiles):
                if p.id == profile_id:
                    return i
        raise ProfileIndexError(f"no profile with id {profile_id}")

    def get_active(self) -> Optional[Profile]:
        with self._lock:
            for p in self._profiles:
                if p.is_active:
                    return replace(p)
        return None

    def add(self, name: str, base_url: str, token: str) -> Profile:
        with self._lock:
            p = Profile(name=name, base_url=base_url, token=token)
            self._profiles.append(p)
            self._save()
            logger.info("added profile %r", name)
            return replace(p)

    def edit(self, index: int, name: str, base_url: str, token: str) -> Profile:
        with self._lock:
            self._check_index(index)
            p = self._profiles[index]
            p.name, p.base_url, p.token = name, base_url, token
            self._save()
            logger.info("updated profile %r", name)
            if p.is_active:
                self.activator.apply(p)
            return replace(p)

    def switch(self, index: int) -> Profile:
        with self._lock:
            self._check_index(index)
            for p in self._profiles:
                p.is_active = False
            target = self._profiles[index]
            target.is_active = True
            # persisted first so a failed apply can be retried
            self._save()
            logger.info("switched to profile %r", target.name)
            self.activator.apply(target)
            return replace(target)

    def delete(self, index: int) -> Profile:
        with self._lock:
            self._check_index(index)
            if self._profiles[index].is_active:
                raise ActiveProfileError("cannot delete the active profile; switch to another one first")
            removed = self._profiles.pop(index)
            self._save()
            logger.info("deleted profile %r", removed.name)
            return removed

    # id-keyed variants: lookup and mutation happen under one lock hold
    def get_id(self, profile_id: str) -> Profile:
        with self._lock:
            return self.get(self.index_of(profile_id))

    def edit_id(self, profile_id: str, name: str, base_url: str, token: str) -> Profile:
        with self._lock:
            return self.edit(self.index_of(profile_id), name, base_url, token)

    def switch_id(self, profile_id: str) -> Profile:
        with self._lock:
            return self.switch(self.index_of(profile_id))

    def delete_id(self, profile_id: str) -> Profile:
        with self._lock:
            return self.delete(self.index_of(profile_id))
