"""
Theme reconciler: create or update a named theme through the Theme Editor.

Sequence, strictly in order:
    lookup -> (edit | create) -> upload -> save -> apply

Lookup matches the listing link's name exactly. When several themes share a
name the first one in listing order is edited; duplicates are not detected.

Re-running against an existing theme edits it in place. Uploads and the
save/apply commit are repeated on every run, whether or not the files changed.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from .auth import VerifiedSession
from .config import DeployConfig
from .engine import BrowserEngine
from .exceptions import EngineError, ReconcileError, ValidationError
from .selectors import (
    APPLY_THEME_BUTTON,
    ASSET_ROLES,
    CREATE_THEME_BUTTON,
    EDIT_THEME_BUTTON,
    SAVE_THEME_BUTTON,
    THEME_NAME_INPUT,
    Target,
    is_login_url,
    theme_link,
    themes_url,
    upload_control,
    validate_theme_name,
)
from .utils import ensure_screenshot_dir

logger = logging.getLogger(__name__)


@dataclass
class DeploymentTarget:
    """Desired theme: a name plus asset files keyed by role."""

    name: str
    assets: dict[str, Path] = field(default_factory=dict)

    def validate(self) -> None:
        validate_theme_name(self.name)
        unknown = set(self.assets) - set(ASSET_ROLES)
        if unknown:
            raise ValidationError(f"Unknown asset roles: {', '.join(sorted(unknown))}")

    def present_assets(self) -> list[tuple[str, Path]]:
        """Roles whose file exists on disk, in upload order."""
        present = []
        for role in ASSET_ROLES:
            path = self.assets.get(role)
            if path is not None and Path(path).is_file():
                present.append((role, Path(path)))
        return present

    @classmethod
    def from_config(cls, config: DeployConfig) -> "DeploymentTarget":
        dist = Path(config.dist_dir)
        assets = {role: dist / filename for role, filename in config.assets.items()}
        target = cls(name=config.theme_name, assets=assets)
        target.validate()
        return target


@dataclass
class DeploymentOutcome:
    """Result of one reconcile call."""

    theme_name: str
    status: str  # "created", "updated", "failed"
    stage: Optional[str] = None
    message: str = ""
    uploaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    session_expired: bool = False

    @property
    def ok(self) -> bool:
        return self.status in ("created", "updated")

    @property
    def partially_committed(self) -> bool:
        """Saved on the remote side but not applied."""
        return self.status == "failed" and self.stage == "apply"

    def to_dict(self) -> dict:
        return {
            "theme": self.theme_name,
            "status": self.status,
            "stage": self.stage,
            "message": self.message,
            "uploaded": self.uploaded,
            "skipped": self.skipped,
            "duration": self.duration_seconds,
            "session_expired": self.session_expired,
            "partially_committed": self.partially_committed,
        }


@contextmanager
def _stage(stage: str) -> Iterator[None]:
    """Report any engine or validation failure inside the block as a failure of *stage*."""
    try:
        yield
    except (EngineError, ValidationError) as e:
        raise ReconcileError(stage, str(e)) from e


class ThemeReconciler:
    """Makes the remote theme named by a target match that target."""

    def __init__(self, config: DeployConfig):
        self.config = config

    async def reconcile(
        self, session: VerifiedSession, target: DeploymentTarget
    ) -> DeploymentOutcome:
        """Create or update *target* and commit it with save then apply."""
        start_time = time.time()
        engine = session.engine
        outcome = DeploymentOutcome(theme_name=target.name, status="failed")
        logger.info("Reconciling theme '%s'", target.name)

        try:
            await self.open_listing(engine)
            exists = await self.lookup(engine, target.name)

            if exists:
                await self.open_existing(engine, target.name)
            else:
                await self.open_create(engine, target.name)

            outcome.uploaded, outcome.skipped = await self.upload_assets(engine, target)
            await self.commit(engine)

            outcome.status = "updated" if exists else "created"
            logger.info("Applied theme %s (%s)", target.name, outcome.status)

        except ReconcileError as e:
            outcome.stage = e.stage
            outcome.message = str(e)
            outcome.session_expired = e.session_expired
            logger.error("Theme '%s' failed at stage '%s': %s", target.name, e.stage, e)
            if self.config.settings.screenshot_on_failure:
                await self.take_screenshot(engine, f"failed-{e.stage}")

        outcome.duration_seconds = time.time() - start_time
        return outcome

    async def open_listing(self, engine: BrowserEngine) -> None:
        """Load the account's theme listing and wait for it to render."""
        with _stage("lookup"):
            url = themes_url(self.config.base_url, self.config.account_id)
            await engine.navigate(url)

        if is_login_url(engine.url):
            raise ReconcileError(
                "lookup",
                "Session is not valid - theme listing redirected to login page",
                session_expired=True,
            )

        # Client-rendered; the Create button appears together with the theme list.
        with _stage("lookup"):
            rendered = await engine.exists(CREATE_THEME_BUTTON)
        if not rendered:
            logger.warning("Theme listing did not finish rendering at %s", engine.url)

    async def lookup(self, engine: BrowserEngine, name: str) -> bool:
        """True if the listing shows a theme named exactly *name*."""
        with _stage("lookup"):
            found = await engine.is_visible(theme_link(name))
        logger.debug("Theme '%s' %s", name, "found" if found else "not found")
        return found

    async def open_existing(self, engine: BrowserEngine, name: str) -> None:
        with _stage("edit"):
            await engine.click(theme_link(name))
            await self._require(engine, EDIT_THEME_BUTTON, "edit")
            await engine.click(EDIT_THEME_BUTTON)
        logger.debug("Editing existing theme '%s'", name)

    async def open_create(self, engine: BrowserEngine, name: str) -> None:
        with _stage("create"):
            await self._require(engine, CREATE_THEME_BUTTON, "create")
            await engine.click(CREATE_THEME_BUTTON)
            await self._require(engine, THEME_NAME_INPUT, "create")
            await engine.fill(THEME_NAME_INPUT, name)
        logger.debug("Creating new theme '%s'", name)

    async def upload_assets(
        self, engine: BrowserEngine, target: DeploymentTarget
    ) -> tuple[list[str], list[str]]:
        """Attach every present asset; returns (uploaded, skipped) roles."""
        present = target.present_assets()
        present_roles = [role for role, _ in present]
        skipped = [role for role in ASSET_ROLES if role not in present_roles]

        for role in skipped:
            logger.debug("  - %s: no file, skipped", role)

        for role, path in present:
            with _stage("upload"):
                await engine.set_input_files(upload_control(role), path)
            logger.info("  + %s <- %s", role, path)

        return present_roles, skipped

    async def commit(self, engine: BrowserEngine) -> None:
        """Save the draft, then apply it. Apply failure leaves the theme saved."""
        with _stage("save"):
            await engine.click(SAVE_THEME_BUTTON)
        logger.debug("Theme saved")

        with _stage("apply"):
            await engine.click(APPLY_THEME_BUTTON)

    async def take_screenshot(self, engine: BrowserEngine, name: str) -> Optional[str]:
        """Take a screenshot for debugging."""
        screenshot_dir = ensure_screenshot_dir(self.config.settings.screenshot_path)
        timestamp = time.strftime("%Y%m%d-%H%M%S")
        path = screenshot_dir / f"{timestamp}-{name}.png"

        try:
            await engine.screenshot(path)
        except EngineError as e:
            logger.warning("Failed to take screenshot: %s", e)
            return None

        logger.debug("Screenshot saved: %s", path)
        return str(path)

    @staticmethod
    async def _require(engine: BrowserEngine, target: Target, stage: str) -> None:
        if not await engine.exists(target):
            raise ReconcileError(stage, f"Control not found: {target.describe()}")
