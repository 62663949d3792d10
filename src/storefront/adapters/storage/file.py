"""
Token storage adapters - Implement TokenStore protocol.

The file store keeps the bearer token and user snapshot in a small JSON
document readable only by the owner.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class FileTokenStore:
    """Persists the session to a JSON file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> tuple[Optional[str], Optional[dict[str, Any]]]:
        """Load the saved session; unreadable files count as empty."""
        if not self.path.exists():
            return None, None

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not load session from %s: %s", self.path, e)
            return None, None

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed session file %s", self.path)
            return None, None

        token = data.get("token") or None
        user = data.get("user") if isinstance(data.get("user"), dict) else None
        return token, user

    def save(self, token: str, user: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump({"token": token, "user": user}, f, indent=2)
        os.chmod(self.path, 0o600)
        logger.info("Session saved to %s", self.path)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("Session cleared")


class MemoryTokenStore:
    """Keeps the session in memory only."""

    def __init__(self) -> None:
        self.token: Optional[str] = None
        self.user: Optional[dict[str, Any]] = None

    def load(self) -> tuple[Optional[str], Optional[dict[str, Any]]]:
        return self.token, self.user

    def save(self, token: str, user: dict[str, Any]) -> None:
        self.token = token
        self.user = dict(user)

    def clear(self) -> None:
        self.token = None
        self.user = None
