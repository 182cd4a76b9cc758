"""Credential stores passed explicitly into every request-issuing object."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "accessToken"
REFRESH_TOKEN = "refreshToken"
USER = "user"
SESSION_KEYS = (USER, ACCESS_TOKEN, REFRESH_TOKEN)


class CredentialStore:
    """Key/value interface for the persisted session (tokens and user profile)."""

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    @property
    def access_token(self) -> Optional[str]:
        token = self.get(ACCESS_TOKEN)
        return str(token) if token else None

    @property
    def user(self) -> Dict[str, Any]:
        user = self.get(USER)
        return user if isinstance(user, dict) else {}

    @property
    def role(self) -> Optional[str]:
        return self.user.get("role")

    def clear(self) -> None:
        """Forget the session, as done after the API answers 401."""

        for key in SESSION_KEYS:
            self.remove(key)


class InMemoryCredentialStore(CredentialStore):
    def __init__(self, **values: Any) -> None:
        self._values: Dict[str, Any] = dict(values)

    def get(self, key: str) -> Optional[Any]:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class FileCredentialStore(CredentialStore):
    """JSON file store used by the command line tool."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable credentials file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)

    def get(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)
