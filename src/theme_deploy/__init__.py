"""
Canvas theme deployment package.

This package authenticates against a Canvas LMS instance and creates or
updates a theme through the Theme Editor using Playwright browser automation.
"""

from .exceptions import (
    ThemeDeployError,
    AuthError,
    SessionStoreError,
    NotFoundError,
    CorruptError,
    ReconcileError,
    EngineError,
    ValidationError,
    ConfigurationError,
)
from .config import DeployConfig, load_config, validate_config
from .credentials import LoginCredential, TokenCredential, read_token_file
from .auth import (
    FormLoginAuth,
    Identity,
    TokenAuth,
    VerifiedSession,
    authenticate,
    authenticate_with_token,
)
from .session_store import SessionStore
from .reconciler import DeploymentOutcome, DeploymentTarget, ThemeReconciler

__all__ = [
    "ThemeDeployError",
    "AuthError",
    "SessionStoreError",
    "NotFoundError",
    "CorruptError",
    "ReconcileError",
    "EngineError",
    "ValidationError",
    "ConfigurationError",
    "DeployConfig",
    "load_config",
    "validate_config",
    "LoginCredential",
    "TokenCredential",
    "read_token_file",
    "FormLoginAuth",
    "Identity",
    "TokenAuth",
    "VerifiedSession",
    "authenticate",
    "authenticate_with_token",
    "SessionStore",
    "DeploymentOutcome",
    "DeploymentTarget",
    "ThemeReconciler",
]
