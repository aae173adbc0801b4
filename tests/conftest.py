"""
Shared test fixtures for theme deployment tests.

``FakeCanvas`` implements the ``BrowserEngine`` primitives against an
in-memory model of the Canvas login form, API and Theme Editor, so the
authentication and reconcile logic can run without a browser.
"""
import re
from pathlib import Path
from urllib.parse import urlparse

import pytest

from theme_deploy.auth import Identity, VerifiedSession
from theme_deploy.config import DeployConfig, DeploySettings
from theme_deploy.engine import HttpResponse
from theme_deploy.exceptions import EngineError


BASE_URL = "http://localhost:3000"
VALID_TOKEN = "abc123"
ADMIN_EMAIL = "admin@localhost"
ADMIN_PASSWORD = "AdminPass!"
ADMIN_USER = {"id": 1, "name": "Admin", "login_id": ADMIN_EMAIL}
SESSION_COOKIE = {
    "name": "canvas_session",
    "value": "s3ss10n",
    "domain": "localhost",
    "path": "/",
    "expires": -1,
    "httpOnly": True,
    "secure": False,
    "sameSite": "Lax",
}

EMAIL_FIELD = 'input[name="pseudonym_session[unique_id]"]'
PASSWORD_FIELD = 'input[name="pseudonym_session[password]"]'
SUBMIT_BUTTON = 'button[type="submit"]'

UPLOAD_LABELS = ("Upload CSS", "Upload JavaScript", "Logo", "Favicon")


def _matches(name, text, exact):
    """Playwright name semantics: regex search, exact equality, or ci substring."""
    if isinstance(name, re.Pattern):
        return name.search(text) is not None
    if exact:
        return name == text
    return name.lower() in text.lower()


class FakeCanvas:
    """In-memory Canvas driven through the BrowserEngine methods."""

    def __init__(self, themes=(), logged_in=False):
        self.themes = [
            {"name": name, "saves": 1, "applied": True, "files": {}} for name in themes
        ]
        self.logged_in = logged_in
        self.passwords = {ADMIN_EMAIL: ADMIN_PASSWORD}
        self.url = "about:blank"
        self.view = "blank"
        self.opened = None
        self.draft = None
        self.form = {}
        self.headers = {}
        self.jar = []
        self.fail_on = {}
        self.unreachable = False
        self.calls = []
        self.screenshots = []

    # -- helpers used by tests ------------------------------------------------

    def theme(self, name):
        return next((t for t in self.themes if t["name"] == name), None)

    def referenced(self, text):
        return any(text in call[1] for call in self.calls if len(call) > 1)

    # -- UI model -------------------------------------------------------------

    def _buttons(self):
        return {
            "listing": ["Create theme"],
            "theme": ["Edit"],
            "editor": ["Save theme", "Apply theme"],
        }.get(self.view, [])

    def _labels(self):
        if self.view == "editor":
            return ["Theme name", *UPLOAD_LABELS]
        return []

    def _links(self):
        if self.view == "listing":
            return [t["name"] for t in self.themes]
        return []

    def _resolve(self, target):
        if target.kind == "css":
            fields = [EMAIL_FIELD, PASSWORD_FIELD, SUBMIT_BUTTON] if self.view == "login" else []
            return target.value if target.value in fields else None
        if target.kind == "role" and target.value == "link":
            candidates = self._links()
        elif target.kind == "role" and target.value == "button":
            candidates = self._buttons()
        elif target.kind == "label":
            candidates = self._labels()
        else:
            candidates = []
        return next(
            (text for text in candidates if _matches(target.name, text, target.exact)), None
        )

    def _require(self, target):
        text = self._resolve(target)
        if text is None:
            raise EngineError(f"Timeout waiting for {target.describe()}")
        if text in self.fail_on:
            raise self.fail_on[text]
        return text

    # -- BrowserEngine --------------------------------------------------------

    async def navigate(self, url):
        self.calls.append(("navigate", url))
        if self.unreachable:
            raise EngineError(f"net::ERR_CONNECTION_REFUSED at {url}")
        path = urlparse(url).path
        self.opened = None
        self.draft = None
        if path != "/login" and not self.logged_in:
            self.url = f"{BASE_URL}/login"
            self.view = "login"
            return 200
        self.url = url
        if path == "/login":
            self.view = "login"
        elif path.endswith("/themes"):
            self.view = "listing"
        else:
            self.view = "dashboard"
        return 200

    async def fill(self, target, value):
        self.calls.append(("fill", target.describe()))
        text = self._require(target)
        if target.kind == "css":
            self.form[text] = value
        elif text == "Theme name":
            self.draft["name"] = value
        else:
            raise EngineError(f"{target.describe()} is not fillable")

    async def click(self, target, *, wait_for_navigation=False):
        self.calls.append(("click", target.describe()))
        text = self._require(target)

        if text == SUBMIT_BUTTON:
            email, password = self.form.get(EMAIL_FIELD), self.form.get(PASSWORD_FIELD)
            if password and self.passwords.get(email) == password:
                self.logged_in = True
                self.jar = [dict(SESSION_COOKIE)]
                self.url = f"{BASE_URL}/?login_success=1"
                self.view = "dashboard"
            else:
                self.url = f"{BASE_URL}/login"
            return

        if target.kind == "role" and target.value == "link":
            self.opened = next(t for t in self.themes if t["name"] == text)
            self.view = "theme"
        elif text == "Edit":
            self.draft = {"theme": self.opened, "name": self.opened["name"], "files": {}}
            self.view = "editor"
        elif text == "Create theme":
            self.draft = {"theme": None, "name": None, "files": {}}
            self.view = "editor"
        elif text == "Save theme":
            theme = self.draft["theme"]
            if theme is None:
                theme = {"name": self.draft["name"], "saves": 0, "applied": False, "files": {}}
                self.themes.append(theme)
                self.draft["theme"] = theme
            theme["saves"] += 1
            theme["applied"] = False
            theme["files"] = dict(self.draft["files"])
        elif text == "Apply theme":
            if self.draft["theme"] is None:
                raise EngineError("Nothing saved to apply")
            self.draft["theme"]["applied"] = True

    async def exists(self, target):
        self.calls.append(("exists", target.describe()))
        return self._resolve(target) is not None

    async def is_visible(self, target):
        self.calls.append(("is_visible", target.describe()))
        return self._resolve(target) is not None

    async def set_input_files(self, target, path):
        self.calls.append(("upload", target.describe()))
        text = self._require(target)
        if not Path(path).exists():
            raise EngineError(f"File not found: {path}")
        self.draft["files"][text] = str(path)

    async def set_extra_http_headers(self, headers):
        self.calls.append(("headers", ",".join(headers)))
        self.headers.update(headers)

    async def cookies(self):
        return [dict(c) for c in self.jar]

    async def add_cookies(self, cookies):
        self.calls.append(("add_cookies", str(len(cookies))))
        self.jar.extend(dict(c) for c in cookies)
        if any(
            c.get("name") == SESSION_COOKIE["name"] and c.get("value") == SESSION_COOKIE["value"]
            for c in cookies
        ):
            self.logged_in = True

    async def request(self, method, url, headers=None):
        self.calls.append(("request", f"{method} {url}"))
        if self.unreachable:
            raise EngineError(f"net::ERR_CONNECTION_REFUSED at {url}")
        if method == "GET" and urlparse(url).path == "/api/v1/users/self":
            auth = (headers or {}).get("Authorization") or self.headers.get("Authorization")
            if auth == f"Bearer {VALID_TOKEN}":
                return HttpResponse(status=200, body=dict(ADMIN_USER))
            return HttpResponse(status=401, body={"errors": [{"message": "Invalid access token."}]})
        return HttpResponse(status=404, body={"errors": [{"message": "The specified resource does not exist."}]})

    async def screenshot(self, path):
        self.screenshots.append(str(path))


@pytest.fixture
def canvas():
    """A logged-in fake Canvas with no themes."""
    return FakeCanvas(logged_in=True)


@pytest.fixture
def dist_dir(tmp_path):
    """Theme build output with a stylesheet and a script but no images."""
    dist = tmp_path / "dist"
    dist.mkdir()
    (dist / "stimulo.css").write_text(":root{--color-brand-500:#4f46e5}")
    (dist / "stimulo.js").write_text("/* placeholder */")
    return dist


@pytest.fixture
def deploy_config(tmp_path, dist_dir):
    """DeployConfig pointing every path into tmp_path."""
    return DeployConfig(
        canvas_base_url=BASE_URL,
        account_id="1",
        theme_name="Stimulo",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        token_file=str(tmp_path / ".canvas-token.local"),
        cookie_file=str(tmp_path / "cookies.json"),
        dist_dir=str(dist_dir),
        assets={
            "stylesheet": "stimulo.css",
            "script": "stimulo.js",
            "logo": "logo.png",
            "favicon": "favicon.ico",
        },
        settings=DeploySettings(
            screenshot_path=str(tmp_path / "screenshots"),
            report_path=str(tmp_path / "report.json"),
        ),
    )


@pytest.fixture
def cookie_session(canvas):
    """A form-login session bound to the fake Canvas."""
    return VerifiedSession(
        engine=canvas,
        identity=Identity(login_id=ADMIN_EMAIL),
        method="login",
        cookie_state=[dict(SESSION_COOKIE)],
    )
