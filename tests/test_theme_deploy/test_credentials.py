"""Tests for credential sources."""

import pytest

from theme_deploy.config import DeployConfig
from theme_deploy.credentials import (
    LoginCredential,
    TokenCredential,
    read_token_file,
    resolve_credential,
)
from theme_deploy.exceptions import ConfigurationError


class TestReadTokenFile:
    """Tests for read_token_file."""

    def test_token_is_trimmed(self, tmp_path):
        """Test surrounding whitespace and the trailing newline are dropped."""
        token_file = tmp_path / ".canvas-token.local"
        token_file.write_text("  abc123\n")

        assert read_token_file(token_file).value == "abc123"

    def test_missing_file(self, tmp_path):
        """Test a missing token file raises a configuration error."""
        with pytest.raises(ConfigurationError, match="Token file not found"):
            read_token_file(tmp_path / "missing")

    def test_empty_file(self, tmp_path):
        """Test a whitespace-only token file is rejected."""
        token_file = tmp_path / ".canvas-token.local"
        token_file.write_text("\n\n")

        with pytest.raises(ConfigurationError, match="empty"):
            read_token_file(token_file)

    def test_token_not_in_repr(self, tmp_path):
        """Test the token value never shows up in a repr."""
        assert "abc123" not in repr(TokenCredential("abc123"))


class TestLoginCredential:
    """Tests for LoginCredential."""

    def test_password_required(self):
        """Test an empty password is a configuration error."""
        with pytest.raises(ConfigurationError, match="CANVAS_ADMIN_PASSWORD"):
            LoginCredential(email="admin@localhost", password="")

    def test_email_required(self):
        with pytest.raises(ConfigurationError, match="CANVAS_ADMIN_EMAIL"):
            LoginCredential(email="", password="pw")

    def test_password_not_in_repr(self):
        assert "pw123" not in repr(LoginCredential(email="a@b", password="pw123"))


class TestResolveCredential:
    """Tests for resolve_credential."""

    def test_token_method(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("abc123")
        config = DeployConfig(token_file=str(token_file))

        credential = resolve_credential(config, "token")

        assert isinstance(credential, TokenCredential)
        assert credential.value == "abc123"

    def test_login_method(self):
        config = DeployConfig(admin_email="admin@localhost", admin_password="pw")

        credential = resolve_credential(config, "login")

        assert credential == LoginCredential("admin@localhost", "pw")

    def test_unknown_method(self):
        with pytest.raises(ConfigurationError, match="Unknown authentication method"):
            resolve_credential(DeployConfig(), "oauth")
