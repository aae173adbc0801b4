"""Configuration loading and validation for Canvas theme deployment."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import yaml

from .exceptions import ConfigurationError, ValidationError
from .selectors import validate_account_id, validate_theme_name


# Pattern to match ${VAR_NAME} or ${VAR_NAME:-default}
ENV_VAR_PATTERN = re.compile(r'\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}')

DEFAULT_CONFIG_PATH = Path("config/theme-deploy.yaml")

# Built-in template; a YAML file only needs the keys it overrides.
DEFAULT_TEMPLATE: dict[str, Any] = {
    "canvas_base_url": "${CANVAS_BASE_URL:-http://localhost:3000}",
    "account_id": "${CANVAS_ACCOUNT_ID:-1}",
    "theme_name": "${THEME_NAME:-Stimulo}",
    "admin_email": "${CANVAS_ADMIN_EMAIL:-admin@localhost}",
    "admin_password": "${CANVAS_ADMIN_PASSWORD:-}",
    "token_file": "${CANVAS_TOKEN_FILE:-.canvas-token.local}",
    "cookie_file": "${CANVAS_COOKIE_FILE:-.tmp/canvas-cookies.json}",
    "dist_dir": "${THEME_DIST_DIR:-theme/dist}",
    "assets": {
        "stylesheet": "stimulo.css",
        "script": "stimulo.js",
        "logo": "logo.png",
        "favicon": "favicon.ico",
    },
    "settings": {
        "headless": "${THEME_DEPLOY_HEADLESS:-true}",
    },
}


@dataclass
class DeploySettings:
    """Browser behavior settings."""

    headless: bool = True
    navigation_timeout_ms: int = 60000
    action_timeout_ms: int = 15000
    screenshot_on_failure: bool = True
    screenshot_path: str = ".tmp/screenshots"
    report_path: str = ".tmp/theme-deploy-report.json"
    viewport_width: int = 1440
    viewport_height: int = 900


@dataclass
class DeployConfig:
    """Complete deployment configuration, built once at the process boundary."""

    canvas_base_url: str = "http://localhost:3000"
    account_id: str = "1"
    theme_name: str = "Stimulo"
    admin_email: str = "admin@localhost"
    admin_password: str = ""
    token_file: str = ".canvas-token.local"
    cookie_file: str = ".tmp/canvas-cookies.json"
    dist_dir: str = "theme/dist"
    assets: dict[str, str] = field(default_factory=dict)
    settings: DeploySettings = field(default_factory=DeploySettings)

    @property
    def base_url(self) -> str:
        """Base URL without a trailing slash."""
        return self.canvas_base_url.rstrip("/")

    def validate(self) -> None:
        """Validate the configuration."""
        parsed = urlparse(self.canvas_base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(
                f"Invalid Canvas base URL: '{self.canvas_base_url}'"
            )
        validate_account_id(self.account_id)
        validate_theme_name(self.theme_name)

        if self.settings.navigation_timeout_ms <= 0 or self.settings.action_timeout_ms <= 0:
            raise ValidationError("Timeouts must be positive")


def _substitute_env_vars(value: Any) -> Any:
    """
    Recursively substitute environment variables in configuration values.

    Supports patterns:
        ${VAR_NAME} - Required variable, raises error if not set
        ${VAR_NAME:-default} - Optional variable with default value

    Args:
        value: The value to process (string, dict, list, or other)

    Returns:
        Value with environment variables substituted
    """
    if isinstance(value, str):
        def replace_match(match: re.Match) -> str:
            var_name = match.group(1)
            default = match.group(2)
            env_value = os.environ.get(var_name)

            if env_value is not None:
                return env_value
            elif default is not None:
                return default
            else:
                raise ConfigurationError(
                    f"Environment variable '{var_name}' is not set and has no default. "
                    f"Set it with: export {var_name}=<value>"
                )

        return ENV_VAR_PATTERN.sub(replace_match, value)

    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]

    else:
        return value


def _merge(base: dict, override: dict) -> dict:
    """Merge *override* into a copy of *base*, one level of nesting deep."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Setting '{name}' must be an integer, got {value!r}")


def build_config(data: dict) -> DeployConfig:
    """Build a DeployConfig from an already substituted mapping."""
    settings_data = data.get("settings") or {}
    viewport = settings_data.get("viewport") or {}
    defaults = DeploySettings()
    settings = DeploySettings(
        headless=_as_bool(settings_data.get("headless", defaults.headless)),
        navigation_timeout_ms=_as_int(
            "navigation_timeout_ms",
            settings_data.get("navigation_timeout_ms", defaults.navigation_timeout_ms),
        ),
        action_timeout_ms=_as_int(
            "action_timeout_ms",
            settings_data.get("action_timeout_ms", defaults.action_timeout_ms),
        ),
        screenshot_on_failure=_as_bool(
            settings_data.get("screenshot_on_failure", defaults.screenshot_on_failure)
        ),
        screenshot_path=str(settings_data.get("screenshot_path", defaults.screenshot_path)),
        report_path=str(settings_data.get("report_path", defaults.report_path)),
        viewport_width=_as_int("viewport.width", viewport.get("width", defaults.viewport_width)),
        viewport_height=_as_int("viewport.height", viewport.get("height", defaults.viewport_height)),
    )

    assets = {str(role): str(name) for role, name in (data.get("assets") or {}).items()}

    return DeployConfig(
        canvas_base_url=str(data.get("canvas_base_url", "http://localhost:3000")),
        account_id=str(data.get("account_id", "1")),
        theme_name=str(data.get("theme_name", "Stimulo")),
        admin_email=str(data.get("admin_email", "")),
        admin_password=str(data.get("admin_password", "")),
        token_file=str(data.get("token_file", ".canvas-token.local")),
        cookie_file=str(data.get("cookie_file", ".tmp/canvas-cookies.json")),
        dist_dir=str(data.get("dist_dir", "theme/dist")),
        assets=assets,
        settings=settings,
    )


def load_config(config_path: Optional[str] = None) -> DeployConfig:
    """
    Load the deployment configuration.

    The built-in template is always applied; a YAML file, when given or when
    ``config/theme-deploy.yaml`` exists, overrides it key by key. Environment
    variables in the format ${VAR_NAME} or ${VAR_NAME:-default} are
    substituted after merging.

    Args:
        config_path: Path to a YAML configuration file (optional)

    Returns:
        Parsed DeployConfig object
    """
    raw_data: dict = {}

    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
    else:
        config_file = DEFAULT_CONFIG_PATH

    if config_file.exists():
        try:
            with open(config_file) as f:
                raw_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}")

        if not isinstance(raw_data, dict):
            raise ConfigurationError(f"Configuration in {config_file} must be a mapping")

    data = _substitute_env_vars(_merge(DEFAULT_TEMPLATE, raw_data))
    return build_config(data)


def validate_config(config: DeployConfig) -> bool:
    """
    Validate the configuration.

    Raises:
        ValidationError: If validation fails
    """
    config.validate()
    return True
