#!/usr/bin/env python3
"""
Canvas Theme Deploy Script

Uses Playwright to create or update a Canvas theme through the Theme Editor
and to check Canvas credentials.

Usage:
    python -m theme_deploy auth token           # Verify the API token
    python -m theme_deploy auth login           # Form login, cache cookies
    python -m theme_deploy deploy               # Create/update and apply the theme
    python -m theme_deploy deploy --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from .auth import FormLoginAuth, VerifiedSession, authenticate
from .config import DeployConfig, load_config, validate_config
from .credentials import resolve_credential
from .engine import BrowserEngine, PlaywrightBrowser
from .exceptions import (
    AuthError,
    ConfigurationError,
    EngineError,
    SessionStoreError,
    ThemeDeployError,
    ValidationError,
)
from .reconciler import DeploymentOutcome, DeploymentTarget, ThemeReconciler
from .session_store import SessionStore
from .utils import generate_report, load_and_set_env_local

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s" if not verbose else "%(levelname)s %(name)s: %(message)s",
    )


async def login_and_save(engine: BrowserEngine, config: DeployConfig) -> VerifiedSession:
    """Fresh form login; the resulting cookies are written to the session store."""
    credential = resolve_credential(config, "login")
    session = await authenticate(credential, engine, config.base_url)
    SessionStore(config.cookie_file).save(session)
    return session


async def establish_session(
    engine: BrowserEngine, config: DeployConfig, fresh_login: bool = False
) -> VerifiedSession:
    """
    Get a cookie session for the Theme Editor.

    A stored session is tried first unless *fresh_login* is set. A missing,
    corrupt or rejected store falls back to the login form.
    """
    store = SessionStore(config.cookie_file)

    if not fresh_login and store.exists():
        try:
            cookies = await store.restore(engine)
            provider = FormLoginAuth(config.admin_email, config.admin_password, config.base_url)
            return await provider.resume(engine, cookies)
        except (SessionStoreError, AuthError, EngineError) as e:
            logger.warning("Stored session unusable (%s); logging in again", e)

    return await login_and_save(engine, config)


async def run_deploy(
    engine: BrowserEngine,
    config: DeployConfig,
    target: DeploymentTarget,
    fresh_login: bool = False,
) -> DeploymentOutcome:
    """Authenticate and reconcile *target* once."""
    session = await establish_session(engine, config, fresh_login)
    reconciler = ThemeReconciler(config)
    outcome = await reconciler.reconcile(session, target)

    # Lookup fails before anything is changed, so a second pass is safe.
    if outcome.session_expired and session.method == "restored":
        logger.warning("Stored session was rejected by Canvas; logging in again")
        session = await login_and_save(engine, config)
        outcome = await reconciler.reconcile(session, target)

    return outcome


async def run_auth(engine: BrowserEngine, config: DeployConfig, method: str) -> VerifiedSession:
    """Authenticate with *method* and print who we are."""
    if method == "login":
        session = await login_and_save(engine, config)
        print(f"✓ Logged in as {session.identity.login_id}")
        print(f"✓ Cookies saved to {config.cookie_file}")
        return session

    credential = resolve_credential(config, method)
    session = await authenticate(credential, engine, config.base_url)
    identity = session.identity
    print(f"✓ User ID: {identity.id}")
    print(f"✓ Name: {identity.display_name}")
    print(f"✓ Login: {identity.login_id}")
    return session


def print_plan(config: DeployConfig, target: DeploymentTarget) -> None:
    """Show what a deploy would do without opening a browser."""
    print(f"Theme:   {target.name}")
    print(f"Account: {config.account_id} @ {config.base_url}")
    present = dict(target.present_assets())
    for role, path in target.assets.items():
        icon = "+" if role in present else "-"
        print(f"  {icon} {role}: {path}")
    print("[DRY RUN - No changes will be made]")


def describe_failure(outcome: DeploymentOutcome) -> str:
    line = (
        f"ERROR: theme '{outcome.theme_name}' failed at stage "
        f"'{outcome.stage}': {outcome.message}"
    )
    if outcome.partially_committed:
        line += " (theme is saved but not applied)"
    return line


async def main_async(args: argparse.Namespace) -> int:
    """Async main function."""
    load_and_set_env_local()

    try:
        config = load_config(args.config)
        if getattr(args, "headed", False):
            config.settings.headless = False
        validate_config(config)
        target = DeploymentTarget.from_config(config) if args.command == "deploy" else None
    except (ConfigurationError, ValidationError) as e:
        print(f"ERROR: Invalid config: {e}", file=sys.stderr)
        return 1

    if target is not None and args.dry_run:
        print_plan(config, target)
        return 0

    if target is not None and not target.present_assets():
        logger.warning("No theme assets found in %s; run the theme build first", config.dist_dir)

    try:
        async with PlaywrightBrowser(config.settings, config.base_url) as engine:
            if args.command == "auth":
                await run_auth(engine, config, args.method)
                return 0

            outcome = await run_deploy(engine, config, target, fresh_login=args.fresh_login)
    except AuthError as e:
        print(f"ERROR: Authentication failed: {e}", file=sys.stderr)
        return 1
    except ThemeDeployError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    generate_report([outcome.to_dict()], config.settings.report_path)

    if not outcome.ok:
        print(describe_failure(outcome), file=sys.stderr)
        return 1

    print(f"Applied theme {outcome.theme_name} ({outcome.status})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="theme-deploy",
        description="Deploy a theme to Canvas through the Theme Editor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Check the API token:
    theme-deploy auth token

  Create or update the theme:
    theme-deploy deploy

  Show what would be uploaded:
    theme-deploy deploy --dry-run
        """,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to configuration file (default: config/theme-deploy.yaml if present)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show detailed logging output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    auth_parser = subparsers.add_parser("auth", help="Verify Canvas credentials")
    auth_parser.add_argument("method", choices=["token", "login"], help="Authentication method")
    auth_parser.add_argument("--headed", action="store_true", help="Show the browser window")

    deploy_parser = subparsers.add_parser("deploy", help="Create or update the theme")
    deploy_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the theme and assets that would be deployed",
    )
    deploy_parser.add_argument(
        "--fresh-login",
        action="store_true",
        help="Ignore stored cookies and log in through the form",
    )
    deploy_parser.add_argument("--headed", action="store_true", help="Show the browser window")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
