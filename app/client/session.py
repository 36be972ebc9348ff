"""
Client-side authentication state.

``SessionContext`` is passed to whatever needs the token instead of living in
a module global, so its storage backends can be swapped in tests.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger("taskflow.client")

TOKEN_KEY = "auth_token"
USER_KEY = "auth_user"


class MemoryStorage:
    """Key/value storage that lives as long as the process (a browser tab's
    session storage)."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileStorage:
    """Durable key/value storage backed by a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable storage file %s", self.path)
            return {}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


@dataclass
class AuthSession:
    token: str
    user: Dict[str, Any]
    remember: bool = False


class SessionContext:
    """Current token and user profile plus where they are persisted.

    ``remember=True`` writes to durable storage, otherwise to session storage.
    """

    def __init__(self, durable: Any, session: Optional[Any] = None):
        self.durable = durable
        self.session_storage = session if session is not None else MemoryStorage()
        self._current: Optional[AuthSession] = None

    def get(self) -> Optional[AuthSession]:
        return self._current

    @property
    def token(self) -> Optional[str]:
        return self._current.token if self._current else None

    def is_authenticated(self) -> bool:
        return self._current is not None and bool(self._current.token) and bool(self._current.user)

    def set(self, token: str, user: Dict[str, Any], remember: bool = False) -> AuthSession:
        self._current = AuthSession(token=token, user=user, remember=remember)
        self.persist()
        return self._current

    def persist(self) -> None:
        if self._current is None:
            return
        target = self.durable if self._current.remember else self.session_storage
        target.set(TOKEN_KEY, self._current.token)
        target.set(USER_KEY, json.dumps(self._current.user))

    def clear(self) -> None:
        self._current = None
        for storage in (self.durable, self.session_storage):
            storage.remove(TOKEN_KEY)
            storage.remove(USER_KEY)

    def restore(self) -> Optional[AuthSession]:
        """Load a persisted session, durable storage first.

        Unparseable user data is dropped from both storages.
        """
        for storage, remember in ((self.durable, True), (self.session_storage, False)):
            token = storage.get(TOKEN_KEY)
            raw_user = storage.get(USER_KEY)
            if not token or not raw_user:
                continue
            try:
                user = json.loads(raw_user)
            except ValueError:
                logger.error("Stored user profile is corrupt; discarding it")
                self.durable.remove(USER_KEY)
                self.session_storage.remove(USER_KEY)
                return None
            self._current = AuthSession(token=token, user=user, remember=remember)
            return self._current
        return None
