"""
Authentication providers for Canvas.

Two strategies produce a ``VerifiedSession``:

    - ``TokenAuth``      verifies a bearer token against ``/api/v1/users/self``
                         and attaches it to every later request.
    - ``FormLoginAuth``  submits the login form and keeps the resulting cookies.
                         Required for the Theme Editor, which does not accept
                         bearer tokens.

Both providers move through ``unauthenticated -> verifying`` and end in
``authenticated`` or ``failed``. Nothing here retries.

Security:
    Tokens and passwords are never logged.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from .credentials import Credential, LoginCredential, TokenCredential
from .engine import BrowserEngine
from .exceptions import AuthError, EngineError
from .selectors import (
    LOGIN_EMAIL_INPUT,
    LOGIN_PASSWORD_INPUT,
    LOGIN_SUBMIT,
    dashboard_url,
    is_login_url,
    login_url,
    self_api_url,
)

logger = logging.getLogger(__name__)


UNAUTHENTICATED = "unauthenticated"
VERIFYING = "verifying"
AUTHENTICATED = "authenticated"
FAILED = "failed"


@dataclass
class Identity:
    """The user a session acts as."""

    id: Optional[int] = None
    display_name: Optional[str] = None
    login_id: Optional[str] = None

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "Identity":
        """Build from a ``/api/v1/users/self`` record."""
        return cls(
            id=record.get("id"),
            display_name=record.get("name"),
            login_id=record.get("login_id") or record.get("email"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.display_name, "login_id": self.login_id}


@dataclass
class VerifiedSession:
    """An authenticated handle bound to one engine and one identity."""

    engine: BrowserEngine = field(repr=False)
    identity: Identity
    method: str
    auth_header: Optional[dict[str, str]] = field(default=None, repr=False)
    cookie_state: Optional[list[dict]] = field(default=None, repr=False)


class AuthProvider(ABC):
    """Base for authentication strategies."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")
        self.state = UNAUTHENTICATED

    @abstractmethod
    async def authenticate(self, engine: BrowserEngine) -> VerifiedSession:
        """Authenticate through *engine* and return a verified session."""
        ...

    def _fail(self, message: str) -> AuthError:
        self.state = FAILED
        logger.error(message)
        return AuthError(message)


class TokenAuth(AuthProvider):
    """Bearer token authentication, verified before use."""

    def __init__(self, token: str, base_url: str):
        super().__init__(base_url)
        self._token = token

    @property
    def auth_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    async def authenticate(self, engine: BrowserEngine) -> VerifiedSession:
        self.state = VERIFYING
        if not self._token:
            raise self._fail("API token authentication failed: empty token")

        url = self_api_url(self.base_url)
        try:
            response = await engine.request("GET", url, headers=self.auth_header)
        except EngineError as e:
            raise self._fail(f"API token verification request failed: {e}") from e

        if not response.ok:
            raise self._fail(f"API token authentication failed: {response.status}")
        if not isinstance(response.body, dict):
            raise self._fail("API token authentication failed: unexpected response body")

        # Only a verified token is attached to later requests.
        try:
            await engine.set_extra_http_headers(self.auth_header)
        except EngineError as e:
            raise self._fail(f"Could not attach API token: {e}") from e

        identity = Identity.from_api(response.body)
        self.state = AUTHENTICATED
        logger.info("Authenticated as: %s (%s)", identity.display_name, identity.login_id)
        return VerifiedSession(
            engine=engine,
            identity=identity,
            method="token",
            auth_header=self.auth_header,
        )


class FormLoginAuth(AuthProvider):
    """Cookie-based authentication through the Canvas login form."""

    def __init__(self, email: str, password: str, base_url: str):
        super().__init__(base_url)
        self.email = email
        self._password = password

    async def authenticate(self, engine: BrowserEngine) -> VerifiedSession:
        self.state = VERIFYING
        url = login_url(self.base_url)
        logger.info("Logging in at %s", url)

        try:
            await engine.navigate(url)
            await engine.fill(LOGIN_EMAIL_INPUT, self.email)
            await engine.fill(LOGIN_PASSWORD_INPUT, self._password)
            await engine.click(LOGIN_SUBMIT, wait_for_navigation=True)
        except EngineError as e:
            raise self._fail(f"Login form submission failed: {e}") from e

        # Canvas re-renders the login page on bad credentials; that is the only signal.
        if is_login_url(engine.url):
            raise self._fail("Login failed - still on login page")

        try:
            cookies = await engine.cookies()
        except EngineError as e:
            raise self._fail(f"Could not capture session cookies: {e}") from e

        self.state = AUTHENTICATED
        logger.info("Logged in successfully (session-based)")
        return VerifiedSession(
            engine=engine,
            identity=Identity(login_id=self.email),
            method="login",
            cookie_state=cookies,
        )

    async def resume(self, engine: BrowserEngine, cookie_state: list[dict]) -> VerifiedSession:
        """Accept a cookie state already seeded into *engine* if Canvas still honors it."""
        self.state = VERIFYING
        try:
            await engine.navigate(dashboard_url(self.base_url))
        except EngineError as e:
            raise self._fail(f"Could not resume stored session: {e}") from e

        if is_login_url(engine.url):
            raise self._fail("Stored session expired - redirected to login page")

        self.state = AUTHENTICATED
        logger.info("Resumed stored session for %s", self.email)
        return VerifiedSession(
            engine=engine,
            identity=Identity(login_id=self.email),
            method="restored",
            cookie_state=list(cookie_state),
        )


def provider_for(credential: Credential, base_url: str) -> AuthProvider:
    """Pick the authentication strategy matching a credential."""
    if isinstance(credential, TokenCredential):
        return TokenAuth(credential.value, base_url)
    if isinstance(credential, LoginCredential):
        return FormLoginAuth(credential.email, credential.password, base_url)
    raise TypeError(f"Unsupported credential type: {type(credential).__name__}")


async def authenticate(
    credential: Credential, engine: BrowserEngine, base_url: str
) -> VerifiedSession:
    """
    Authenticate with *credential* and return a verified session.

    Raises:
        AuthError: If the credential is rejected or cannot be verified
    """
    return await provider_for(credential, base_url).authenticate(engine)


async def authenticate_with_token(
    engine: BrowserEngine, token: str, base_url: str = "http://localhost:3000"
) -> dict[str, Any]:
    """Verify *token* and return the user record as ``{id, name, login_id}``."""
    session = await TokenAuth(token, base_url).authenticate(engine)
    return session.identity.to_dict()
