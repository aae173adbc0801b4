"""
Browser automation engine interface and its Playwright adapter.

The authentication and reconcile code only ever talks to a ``BrowserEngine``.
``PlaywrightEngine`` implements it on top of a Playwright page, and
``PlaywrightBrowser`` owns the Playwright lifecycle for one run.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Locator,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
)

from .config import DeploySettings
from .exceptions import EngineError
from .selectors import Target

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """Minimal view of an HTTP response made through the engine."""

    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class BrowserEngine(Protocol):
    """Automation primitives the core depends on."""

    @property
    def url(self) -> str: ...

    async def navigate(self, url: str) -> Optional[int]: ...

    async def fill(self, target: Target, value: str) -> None: ...

    async def click(self, target: Target, *, wait_for_navigation: bool = False) -> None: ...

    async def exists(self, target: Target) -> bool: ...

    async def is_visible(self, target: Target) -> bool: ...

    async def set_input_files(self, target: Target, path: Path) -> None: ...

    async def set_extra_http_headers(self, headers: dict[str, str]) -> None: ...

    async def cookies(self) -> list[dict]: ...

    async def add_cookies(self, cookies: list[dict]) -> None: ...

    async def request(
        self, method: str, url: str, headers: Optional[dict[str, str]] = None
    ) -> HttpResponse: ...

    async def screenshot(self, path: Path) -> None: ...


class PlaywrightEngine:
    """``BrowserEngine`` backed by a Playwright page.

    Every Playwright failure (timeouts included) surfaces as ``EngineError``.
    """

    def __init__(self, page: Page, wait_timeout_ms: Optional[int] = None):
        self.page = page
        self.wait_timeout_ms = wait_timeout_ms

    @property
    def url(self) -> str:
        return self.page.url

    def locator(self, target: Target) -> Locator:
        """Resolve a target to the first matching Playwright locator."""
        exact = None if isinstance(target.name, re.Pattern) else target.exact
        if target.kind == "css":
            locator = self.page.locator(target.value)
        elif target.kind == "role":
            locator = self.page.get_by_role(target.value, name=target.name, exact=exact)
        elif target.kind == "label":
            locator = self.page.get_by_label(target.name, exact=exact)
        elif target.kind == "text":
            locator = self.page.get_by_text(target.name, exact=exact)
        else:
            raise ValueError(f"Unknown target kind: {target.kind!r}")
        return locator.first

    async def navigate(self, url: str) -> Optional[int]:
        logger.debug("Navigating to %s", url)
        try:
            response = await self.page.goto(url, wait_until="domcontentloaded")
        except PlaywrightError as e:
            raise EngineError(f"Navigation to {url} failed: {e}") from e
        return response.status if response else None

    async def fill(self, target: Target, value: str) -> None:
        try:
            await self.locator(target).fill(value)
        except PlaywrightError as e:
            raise EngineError(f"Could not fill {target.describe()}: {e}") from e

    async def click(self, target: Target, *, wait_for_navigation: bool = False) -> None:
        locator = self.locator(target)
        try:
            if wait_for_navigation:
                async with self.page.expect_navigation(wait_until="networkidle"):
                    await locator.click()
            else:
                await locator.click()
        except PlaywrightError as e:
            raise EngineError(f"Could not click {target.describe()}: {e}") from e

    async def exists(self, target: Target) -> bool:
        """Wait for *target* to be attached; False once the wait times out."""
        try:
            await self.locator(target).wait_for(state="attached", timeout=self.wait_timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug("Not found within timeout: %s", target.describe())
            return False
        except PlaywrightError as e:
            raise EngineError(f"Could not locate {target.describe()}: {e}") from e
        return True

    async def is_visible(self, target: Target) -> bool:
        try:
            return await self.locator(target).is_visible()
        except PlaywrightError as e:
            raise EngineError(f"Could not locate {target.describe()}: {e}") from e

    async def set_input_files(self, target: Target, path: Path) -> None:
        try:
            await self.locator(target).set_input_files(str(path))
        except PlaywrightError as e:
            raise EngineError(f"Could not attach {path} to {target.describe()}: {e}") from e

    async def set_extra_http_headers(self, headers: dict[str, str]) -> None:
        # Context level, so pages and API requests opened later carry them too.
        try:
            await self.page.context.set_extra_http_headers(headers)
        except PlaywrightError as e:
            raise EngineError(f"Could not set request headers: {e}") from e

    async def cookies(self) -> list[dict]:
        try:
            return list(await self.page.context.cookies())
        except PlaywrightError as e:
            raise EngineError(f"Could not read cookies: {e}") from e

    async def add_cookies(self, cookies: list[dict]) -> None:
        try:
            await self.page.context.add_cookies(cookies)
        except PlaywrightError as e:
            raise EngineError(f"Could not add cookies: {e}") from e

    async def request(
        self, method: str, url: str, headers: Optional[dict[str, str]] = None
    ) -> HttpResponse:
        try:
            response = await self.page.request.fetch(url, method=method, headers=headers)
        except PlaywrightError as e:
            raise EngineError(f"{method} {url} failed: {e}") from e

        try:
            body = await response.json()
        except (PlaywrightError, ValueError):
            body = await response.text()
        return HttpResponse(status=response.status, body=body)

    async def screenshot(self, path: Path) -> None:
        try:
            await self.page.screenshot(path=str(path), full_page=True)
        except PlaywrightError as e:
            raise EngineError(f"Screenshot failed: {e}") from e


class PlaywrightBrowser:
    """Owns Playwright, one browser and one context for the duration of a run.

    Usage::

        async with PlaywrightBrowser(config.settings, config.base_url) as engine:
            session = await authenticate(credential, engine, config.base_url)
    """

    def __init__(self, settings: DeploySettings, base_url: str):
        self.settings = settings
        self.base_url = base_url
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None

    async def __aenter__(self) -> PlaywrightEngine:
        """Async context manager entry - setup browser."""
        logger.debug("Starting browser (headless=%s)...", self.settings.headless)
        self.playwright = await async_playwright().start()
        try:
            self.browser = await self.playwright.chromium.launch(headless=self.settings.headless)
            self.context = await self.browser.new_context(
                base_url=self.base_url,
                viewport={
                    "width": self.settings.viewport_width,
                    "height": self.settings.viewport_height,
                },
            )
            self.context.set_default_timeout(self.settings.action_timeout_ms)
            self.context.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
            page = await self.context.new_page()
        except PlaywrightError as e:
            await self.close()
            raise EngineError(f"Could not start browser: {e}") from e
        except BaseException:
            await self.close()
            raise
        logger.debug("Browser ready")
        return PlaywrightEngine(page, wait_timeout_ms=self.settings.action_timeout_ms)

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - guaranteed cleanup."""
        await self.close()

    async def close(self) -> None:
        """Close browser and clean up."""
        if self.context:
            await self.context.close()
            self.context = None
        if self.browser:
            await self.browser.close()
            self.browser = None
        if self.playwright:
            await self.playwright.stop()
            self.playwright = None
        logger.debug("Browser closed")
