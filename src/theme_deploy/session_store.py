"""
Session Store
=============
Persists the cookie state of a form-login session so later runs can skip
the login form.

The file is a JSON array of cookie records as returned by the browser
(``name``, ``value``, ``domain``, ``path``, ``expires``, ...). The store does
not judge freshness: a restored session is re-validated by the caller
(``FormLoginAuth.resume``) and an expired one leads to a fresh login.

No locking is done; concurrent writers must be serialized by the caller.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Union

from .auth import VerifiedSession
from .engine import BrowserEngine
from .exceptions import CorruptError, NotFoundError, SessionStoreError

logger = logging.getLogger(__name__)

REQUIRED_COOKIE_FIELDS = ("name", "value", "domain")


class SessionStore:
    """Reads and writes one cookie state file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, session: VerifiedSession) -> None:
        """Write the session's cookie state to disk.

        Raises:
            SessionStoreError: If the session has no cookie state or the
                file cannot be written
        """
        if session.cookie_state is None:
            raise SessionStoreError(
                f"Session ({session.method}) has no cookie state to persist"
            )

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(session.cookie_state, f, indent=2)
        except OSError as e:
            raise SessionStoreError(f"Could not write session file {self.path}: {e}")

        logger.info("Saved %d cookies to %s", len(session.cookie_state), self.path)

    def load(self) -> list[dict]:
        """Read the cookie state from disk.

        Raises:
            NotFoundError: If the file does not exist
            CorruptError: If the content is not a well-formed cookie list
        """
        if not self.path.exists():
            raise NotFoundError(str(self.path))

        try:
            with open(self.path, encoding="utf-8") as f:
                cookies = json.load(f)
        except json.JSONDecodeError as e:
            raise CorruptError(str(self.path), f"invalid JSON ({e})")
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptError(str(self.path), f"unreadable ({e})")

        if not isinstance(cookies, list):
            raise CorruptError(str(self.path), "cookies must be a JSON array")

        for i, cookie in enumerate(cookies):
            if not isinstance(cookie, dict):
                raise CorruptError(str(self.path), f"cookie {i} must be an object")
            missing = [f for f in REQUIRED_COOKIE_FIELDS if f not in cookie]
            if missing:
                raise CorruptError(
                    str(self.path),
                    f"cookie '{cookie.get('name', i)}' missing fields: {', '.join(missing)}",
                )
            if not all(isinstance(cookie[f], str) for f in REQUIRED_COOKIE_FIELDS):
                raise CorruptError(
                    str(self.path), f"cookie '{cookie['name']}' has non-string fields"
                )

        logger.debug("Loaded %d cookies from %s", len(cookies), self.path)
        return cookies

    async def restore(self, engine: BrowserEngine) -> list[dict]:
        """Seed the engine's cookie jar from disk, before the first navigation."""
        cookies = self.load()
        await engine.add_cookies(cookies)
        logger.info("Loaded cookies from %s", self.path)
        return cookies
