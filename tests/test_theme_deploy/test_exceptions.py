"""Tests for custom exceptions."""

import pytest

from theme_deploy.exceptions import (
    RECONCILE_STAGES,
    AuthError,
    ConfigurationError,
    CorruptError,
    EngineError,
    NotFoundError,
    ReconcileError,
    SessionStoreError,
    ThemeDeployError,
    ValidationError,
)


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize("exc_class", [
        AuthError,
        SessionStoreError,
        EngineError,
        ValidationError,
        ConfigurationError,
    ])
    def test_inherits_from_base(self, exc_class):
        """Test all exceptions inherit from ThemeDeployError."""
        assert issubclass(exc_class, ThemeDeployError)

    def test_store_errors(self):
        assert issubclass(NotFoundError, SessionStoreError)
        assert issubclass(CorruptError, SessionStoreError)


class TestSessionStoreErrors:
    """Tests for session store error details."""

    def test_not_found_carries_path(self):
        error = NotFoundError(".tmp/canvas-cookies.json")
        assert error.path == ".tmp/canvas-cookies.json"
        assert "not found" in str(error)

    def test_corrupt_carries_reason(self):
        error = CorruptError("cookies.json", "invalid JSON")
        assert error.reason == "invalid JSON"
        assert "cookies.json" in str(error)


class TestReconcileError:
    """Tests for ReconcileError."""

    @pytest.mark.parametrize("stage", RECONCILE_STAGES)
    def test_known_stages(self, stage):
        error = ReconcileError(stage, "failed")
        assert error.stage == stage
        assert error.session_expired is False
        assert str(error) == "failed"

    def test_unknown_stage_rejected(self):
        with pytest.raises(ValueError, match="Unknown reconcile stage"):
            ReconcileError("deploy", "failed")

    def test_session_expired_flag(self):
        assert ReconcileError("lookup", "redirected", session_expired=True).session_expired
