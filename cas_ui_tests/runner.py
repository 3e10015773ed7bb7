"""Run registered scenarios with guaranteed browser teardown.

Usage:
    cas-scenario ticket-validation-casv3-pgtiou
    cas-scenario --all --base-url https://localhost:8443/cas
    cas-scenario --list
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import Optional, Union

import anyio

from cas_ui_tests import diagnostics
from cas_ui_tests.config import HarnessConfig
from cas_ui_tests.scenarios import Scenario, load_scenarios
from cas_ui_tests.session import CasSession, cas_session

logger = logging.getLogger(__name__)


async def capture_failure(session: CasSession, label: str) -> None:
    """Screenshot and log every open page; never raises."""
    for page in list(session.pages):
        diagnostics.log_page(page.page)
        await diagnostics.screenshot(page.page, session.config, f"{label}-{page.name}-failure")


def resolve(scenario: Union[str, Scenario]) -> Scenario:
    if callable(scenario):
        return scenario
    registry = load_scenarios()
    try:
        return registry[scenario]
    except KeyError:
        raise KeyError(f"Unknown scenario {scenario!r}; known: {', '.join(sorted(registry))}") from None


async def run_scenario(scenario: Union[str, Scenario], config: Optional[HarnessConfig] = None) -> None:
    """Run one scenario in its own session.

    On failure the state of every open page is captured before the session
    is closed and the scenario's exception propagates.
    """
    fn = resolve(scenario)
    config = config or HarnessConfig.from_env()
    label = getattr(fn, "scenario_name", fn.__name__)
    logger.info("Running scenario %s against %s", label, config.cas_base_url)
    async with cas_session(config) as session:
        try:
            await fn(session)
        except BaseException:
            with anyio.CancelScope(shield=True):
                await capture_failure(session, label)
            raise
    logger.info("Scenario %s passed", label)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run CAS browser scenarios")
    parser.add_argument("scenarios", nargs="*", help="Scenario names to run")
    parser.add_argument("--all", action="store_true", help="Run every registered scenario")
    parser.add_argument("--list", action="store_true", help="List registered scenarios and exit")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--base-url", default=None, help="CAS base URL (defaults to $CAS_BASE_URL)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    registry = load_scenarios()
    if args.list:
        for name in sorted(registry):
            print(name)
        return 0

    names = sorted(registry) if args.all else args.scenarios
    if not names:
        parser.error("name at least one scenario, or pass --all")
    unknown = [name for name in names if name not in registry]
    if unknown:
        parser.error(f"unknown scenario(s): {', '.join(unknown)}")

    config = HarnessConfig.from_env()
    if args.base_url:
        config = dataclasses.replace(config, cas_base_url=args.base_url.rstrip("/"))
    if args.headed:
        config = dataclasses.replace(config, browser=dataclasses.replace(config.browser, headless=False))

    failed = []
    for name in names:
        try:
            anyio.run(run_scenario, name, config)
        except Exception:
            logger.exception("Scenario %s failed", name)
            failed.append(name)

    if failed:
        logger.error("%d of %d scenario(s) failed: %s", len(failed), len(names), ", ".join(failed))
        return 1
    logger.info("All %d scenario(s) passed", len(names))
    return 0


if __name__ == "__main__":
    sys.exit(main())
