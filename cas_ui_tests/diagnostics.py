"""Screenshots and page-state logging.

These are observers only: they never navigate, never touch input, and a
failure while capturing (missing directory permissions, closed page, ...)
is logged and swallowed so it cannot change the outcome of a scenario.
"""
from __future__ import annotations

import itertools
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from playwright.async_api import Page

from cas_ui_tests.config import HarnessConfig

logger = logging.getLogger(__name__)

_sequence = itertools.count(1)
_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")


def artifact_name(prefix: str, name: Optional[str] = None) -> str:
    """Unique, filesystem-safe screenshot file name."""
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    label = _UNSAFE.sub("-", name).strip("-") if name else "page"
    return f"{prefix}-{stamp}-{next(_sequence):03d}-{label}.png"


async def screenshot(page: Page, config: HarnessConfig, name: Optional[str] = None) -> Optional[Path]:
    """Capture the rendered page; returns the file path or None on failure."""
    try:
        directory = Path(config.screenshot_dir)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / artifact_name(config.screenshot_prefix, name)
        await page.screenshot(path=str(path), full_page=True)
    except Exception as exc:
        logger.warning("Screenshot %r failed: %s", name or "page", exc)
        return None
    logger.info("Screenshot saved to %s", path)
    return path


def log(message: object) -> None:
    logger.info("%s", message)


def log_page(page: Page) -> Optional[str]:
    """Log the page's current URL and return it."""
    try:
        url = page.url
    except Exception as exc:
        logger.warning("Could not read page URL: %s", exc)
        return None
    logger.info("Page URL: %s", url)
    return url
