"""Custom exceptions for Canvas theme deployment."""

from __future__ import annotations


RECONCILE_STAGES = ("lookup", "create", "edit", "upload", "save", "apply")


class ThemeDeployError(Exception):
    """Base exception for all theme deployment errors."""

    pass


class AuthError(ThemeDeployError):
    """Raised when a credential is rejected or cannot be verified."""

    pass


class SessionStoreError(ThemeDeployError):
    """Raised when persisted session state cannot be written or read."""

    pass


class NotFoundError(SessionStoreError):
    """Raised when the session state file does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Session file not found: {path}")


class CorruptError(SessionStoreError):
    """Raised when the session state file is not a well-formed cookie list."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Corrupt session file {path}: {reason}")


class ReconcileError(ThemeDeployError):
    """Raised when a theme reconcile stage fails."""

    def __init__(self, stage: str, message: str, session_expired: bool = False):
        if stage not in RECONCILE_STAGES:
            raise ValueError(f"Unknown reconcile stage: {stage!r}")
        self.stage = stage
        self.session_expired = session_expired
        super().__init__(message)


class EngineError(ThemeDeployError):
    """Raised by a browser engine when an automation primitive fails."""

    pass


class ValidationError(ThemeDeployError):
    """Raised when validation of configuration or targets fails."""

    pass


class ConfigurationError(ThemeDeployError):
    """Raised when configuration is invalid or missing."""

    pass
