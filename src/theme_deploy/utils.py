"""Utility functions for Canvas theme deployment."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Optional


# Default path for .env.local file
ENV_LOCAL_PATH = Path(".env.local")


def load_env_local(env_path: Optional[Path] = None) -> dict[str, str]:
    """
    Load environment variables from .env.local file.

    Args:
        env_path: Path to env file (defaults to .env.local)

    Returns:
        Dictionary of environment variables
    """
    path = env_path or ENV_LOCAL_PATH
    env_vars = {}

    if not path.exists():
        return env_vars

    with open(path) as f:
        for line in f:
            line = line.strip()
            # Skip empty lines and comments
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export "):]
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if value and value[0] in ('"', "'") and value[-1] == value[0]:
                    value = value[1:-1]
                env_vars[key] = value

    return env_vars


def load_and_set_env_local(env_path: Optional[Path] = None) -> dict[str, str]:
    """
    Load .env.local and set as environment variables.

    Existing environment variables always win.

    Returns:
        Dictionary of loaded environment variables
    """
    env_vars = load_env_local(env_path)
    for key, value in env_vars.items():
        if key not in os.environ:
            os.environ[key] = value
    return env_vars


def ensure_screenshot_dir(path: str) -> Path:
    """Ensure the screenshot directory exists."""
    screenshot_dir = Path(path)
    screenshot_dir.mkdir(parents=True, exist_ok=True)
    return screenshot_dir


def generate_report(outcomes: list[dict], output_path: Optional[str] = None) -> dict:
    """
    Generate a deployment report from reconcile outcomes.

    Args:
        outcomes: List of outcome dictionaries (``DeploymentOutcome.to_dict()``)
        output_path: Optional path to write JSON report

    Returns:
        Report dictionary
    """
    report = {
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "total": len(outcomes),
        "created": sum(1 for o in outcomes if o.get("status") == "created"),
        "updated": sum(1 for o in outcomes if o.get("status") == "updated"),
        "failed": sum(1 for o in outcomes if o.get("status") == "failed"),
        "results": outcomes,
    }

    if output_path:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(report, f, indent=2)

    return report
