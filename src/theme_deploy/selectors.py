"""
Canvas UI Selectors

These targets address the Canvas login form and the account Theme Editor.
They may need updates if Canvas changes its UI structure.

Matching strategy:
    - Theme lookup uses the link's accessible name, exact and case-sensitive.
    - Controls (buttons, labelled inputs) use a case-insensitive substring
      match on their visible label, never a DOM id.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urlparse

from .exceptions import ValidationError

# Validation patterns for identifiers interpolated into URLs or selectors
VALID_ACCOUNT_ID = re.compile(r'^[a-zA-Z0-9_\-]{1,100}$')
MAX_THEME_NAME_LENGTH = 255


def validate_theme_name(name: str) -> str:
    """Validate a theme name before it is typed into the UI."""
    if not name or not name.strip():
        raise ValidationError("Theme name cannot be empty")
    if len(name) > MAX_THEME_NAME_LENGTH:
        raise ValidationError(
            f"Theme name is too long ({len(name)} > {MAX_THEME_NAME_LENGTH} characters)"
        )
    return name


def validate_account_id(account_id: str) -> str:
    """Validate account ID format to prevent URL injection."""
    if not VALID_ACCOUNT_ID.match(account_id):
        raise ValidationError(
            f"Invalid account ID format: '{account_id}'. "
            "Must be 1-100 alphanumeric characters, underscores, or hyphens."
        )
    return account_id


@dataclass(frozen=True)
class Target:
    """A UI element description understood by every engine.

    ``kind`` is one of:
        - ``css``:   ``value`` is a CSS selector
        - ``role``:  ``value`` is an ARIA role, ``name`` its accessible name
        - ``label``: ``name`` is the text of the element's label
        - ``text``:  ``name`` is the visible text

    ``label`` keeps the plain text a pattern ``name`` was built from.
    """

    kind: str
    value: str = ""
    name: Optional[Union[str, re.Pattern]] = None
    exact: bool = False
    label: Optional[str] = None

    def describe(self) -> str:
        if self.label is not None:
            name = self.label
        elif isinstance(self.name, re.Pattern):
            name = self.name.pattern
        else:
            name = self.name
        if self.kind == "css":
            return self.value
        if self.kind == "role":
            return f"{self.value}[name={name!r}]"
        return f"{self.kind}={name!r}"


def css(selector: str) -> Target:
    return Target(kind="css", value=selector)


def exact_name(role: str, name: str) -> Target:
    """Element of *role* whose accessible name equals *name* (case-sensitive)."""
    return Target(kind="role", value=role, name=name, exact=True)


def control_label(text: str) -> re.Pattern:
    """Case-insensitive substring pattern for a control's visible label."""
    return re.compile(re.escape(text), re.IGNORECASE)


def button(label: str) -> Target:
    return Target(kind="role", value="button", name=control_label(label), label=label)


def labelled(label: str) -> Target:
    return Target(kind="label", name=control_label(label), label=label)


# =============================================================================
# Authentication Selectors
# =============================================================================

LOGIN_PATH = "/login"

LOGIN_EMAIL_INPUT = css('input[name="pseudonym_session[unique_id]"]')
LOGIN_PASSWORD_INPUT = css('input[name="pseudonym_session[password]"]')
LOGIN_SUBMIT = css('button[type="submit"]')

# =============================================================================
# Theme Editor Selectors
# =============================================================================

CREATE_THEME_BUTTON = button("Create theme")
EDIT_THEME_BUTTON = button("Edit")
THEME_NAME_INPUT = labelled("Theme name")
SAVE_THEME_BUTTON = button("Save theme")
APPLY_THEME_BUTTON = button("Apply theme")

# Upload control label per asset role, in upload order
ASSET_UPLOAD_LABELS = {
    "stylesheet": "Upload CSS",
    "script": "Upload JavaScript",
    "logo": "Logo",
    "favicon": "Favicon",
}
ASSET_ROLES = tuple(ASSET_UPLOAD_LABELS)


def theme_link(name: str) -> Target:
    """Listing entry for a theme, matched exactly by its visible label."""
    return exact_name("link", name)


def upload_control(role: str) -> Target:
    """File input for an asset role."""
    if role not in ASSET_UPLOAD_LABELS:
        raise ValidationError(f"Unknown asset role: '{role}'")
    return labelled(ASSET_UPLOAD_LABELS[role])


# =============================================================================
# Utility Functions
# =============================================================================


def login_url(base_url: str) -> str:
    """Generate the URL of the Canvas login form."""
    return f"{base_url.rstrip('/')}{LOGIN_PATH}"


def dashboard_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/"


def self_api_url(base_url: str) -> str:
    """Generate the URL of the current-user API endpoint."""
    return f"{base_url.rstrip('/')}/api/v1/users/self"


def themes_url(base_url: str, account_id: str) -> str:
    """Generate the URL of an account's theme listing.

    Raises:
        ValidationError: If account_id contains invalid characters
    """
    validate_account_id(account_id)
    return f"{base_url.rstrip('/')}/accounts/{account_id}/themes"


def is_login_url(url: str) -> bool:
    """True if *url* points at the login surface."""
    return LOGIN_PATH in urlparse(url).path
