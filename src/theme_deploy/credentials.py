"""Credential source: bearer token or login/password pair."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from .config import DeployConfig
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenCredential:
    """Opaque Canvas API access token."""

    value: str = field(repr=False)

    def __post_init__(self):
        if not self.value or not self.value.strip():
            raise ConfigurationError("API token is empty")


@dataclass(frozen=True)
class LoginCredential:
    """Email/password pair for the Canvas login form."""

    email: str
    password: str = field(repr=False)

    def __post_init__(self):
        if not self.email:
            raise ConfigurationError("Login email is empty. Set CANVAS_ADMIN_EMAIL.")
        if not self.password:
            raise ConfigurationError("Login password is empty. Set CANVAS_ADMIN_PASSWORD.")


Credential = Union[TokenCredential, LoginCredential]


def read_token_file(path: Union[str, Path]) -> TokenCredential:
    """
    Read an API token from a plaintext file.

    Args:
        path: Path to the token file (a single line, surrounding whitespace ignored)

    Returns:
        TokenCredential holding the trimmed token

    Raises:
        ConfigurationError: If the file is missing, unreadable or empty
    """
    token_path = Path(path)
    try:
        token = token_path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        raise ConfigurationError(
            f"Token file not found: {token_path}. "
            "Generate an API access token and write it to this file."
        )
    except OSError as e:
        raise ConfigurationError(f"Could not read token file {token_path}: {e}")

    if not token:
        raise ConfigurationError(f"Token file is empty: {token_path}")

    logger.debug("Loaded API token from %s", token_path)
    return TokenCredential(token)


def resolve_credential(config: DeployConfig, method: str) -> Credential:
    """
    Build the credential for an authentication method.

    Args:
        config: Deployment configuration
        method: "token" or "login"

    Returns:
        TokenCredential or LoginCredential
    """
    if method == "token":
        return read_token_file(config.token_file)
    if method == "login":
        return LoginCredential(email=config.admin_email, password=config.admin_password)
    raise ConfigurationError(f"Unknown authentication method: '{method}'. Use 'token' or 'login'.")
