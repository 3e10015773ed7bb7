"""Shared configuration for CAS browser scenarios.

Values are resolved in this order:
1. Explicit keyword arguments / ``dataclasses.replace`` in code
2. Environment variables (CAS_*, PLAYWRIGHT_*, SCREENSHOT_*)
3. ``.env.defaults`` in the workspace root
4. Built-in defaults below

The configuration is an explicit object handed to ``launch()`` and to the
page primitives. Nothing here is process-wide mutable state.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import urlencode, urljoin

from cas_ui_tests.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CAS_BASE_URL = "https://localhost:8443/cas"
DEFAULT_USERNAME = "casuser"
DEFAULT_PASSWORD = "Mellon"
DEFAULT_COOKIE_NAME = "TGC"
DEFAULT_MAIL_VIEWER_URL = "http://localhost:8282"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def _load_env_defaults() -> Dict[str, str]:
    repo_root = Path(__file__).resolve().parents[1]
    env_defaults = repo_root / ".env.defaults"
    if not env_defaults.exists():
        return {}

    defaults: Dict[str, str] = {}
    for raw in env_defaults.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
            value = value[1:-1]
        defaults[key.strip()] = value
    return defaults


def get_setting(key: str, default: Optional[str] = None) -> Optional[str]:
    """Read a setting from the environment, then from .env.defaults."""
    value = os.environ.get(key)
    if value:
        return value
    return _load_env_defaults().get(key, default)


def _get_bool(key: str, default: bool) -> bool:
    value = get_setting(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _get_float(key: str, default: float) -> float:
    value = get_setting(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("[CONFIG] WARNING: %s=%r is not a number, using default: %s", key, value, default)
        return default


def require_env(name: str) -> str:
    """Return a scenario secret from the environment or fail loudly.

    Secrets such as external identity provider credentials are never
    hard-coded and never read from ``.env.defaults``.
    """
    value = os.environ.get(name)
    if not value:
        raise ConfigurationError(
            operation="require_env",
            payload={"variable": name},
            message=f"environment variable {name} must be set for this scenario",
        )
    return value


@dataclass(frozen=True)
class BrowserOptions:
    """Fixed launch options for one browser process."""

    browser_type: str = "chromium"
    headless: bool = True
    ignore_https_errors: bool = True
    viewport_width: int = 1920
    viewport_height: int = 1080
    slow_mo_ms: float = 0
    args: Tuple[str, ...] = ("--start-maximized",)

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}

    @classmethod
    def from_env(cls) -> "BrowserOptions":
        return cls(
            browser_type=get_setting("PLAYWRIGHT_BROWSER", "chromium") or "chromium",
            headless=_get_bool("PLAYWRIGHT_HEADLESS", True),
            ignore_https_errors=_get_bool("CAS_IGNORE_HTTPS_ERRORS", True),
            viewport_width=int(_get_float("CAS_VIEWPORT_WIDTH", 1920)),
            viewport_height=int(_get_float("CAS_VIEWPORT_HEIGHT", 1080)),
            slow_mo_ms=_get_float("PLAYWRIGHT_SLOW_MO", 0),
        )


@dataclass
class HarnessConfig:
    """Target server, credentials, timeouts and artifact locations for a run."""

    cas_base_url: str = DEFAULT_CAS_BASE_URL
    default_username: str = DEFAULT_USERNAME
    default_password: str = DEFAULT_PASSWORD
    cookie_name: str = DEFAULT_COOKIE_NAME
    # Seconds. Element waits are bounded and distinct from navigation waits.
    element_timeout: float = 5.0
    navigation_timeout: float = 30.0
    request_timeout: float = 15.0
    poll_interval: float = 0.1
    screenshot_dir: Path = Path("screenshots")
    screenshot_prefix: str = "cas"
    mail_viewer_url: str = DEFAULT_MAIL_VIEWER_URL
    verify_tls: bool = False
    browser: BrowserOptions = field(default_factory=BrowserOptions)

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Build a configuration from the process environment."""
        base_url = get_setting("CAS_BASE_URL")
        if not base_url:
            logger.debug("[CONFIG] CAS_BASE_URL not set, using default: %s", DEFAULT_CAS_BASE_URL)
            base_url = DEFAULT_CAS_BASE_URL
        return cls(
            cas_base_url=base_url.rstrip("/"),
            default_username=get_setting("CAS_USERNAME", DEFAULT_USERNAME) or DEFAULT_USERNAME,
            default_password=get_setting("CAS_PASSWORD", DEFAULT_PASSWORD) or DEFAULT_PASSWORD,
            cookie_name=get_setting("CAS_COOKIE_NAME", DEFAULT_COOKIE_NAME) or DEFAULT_COOKIE_NAME,
            element_timeout=_get_float("CAS_ELEMENT_TIMEOUT", 5.0),
            navigation_timeout=_get_float("CAS_NAVIGATION_TIMEOUT", 30.0),
            request_timeout=_get_float("CAS_REQUEST_TIMEOUT", 15.0),
            poll_interval=_get_float("CAS_POLL_INTERVAL", 0.1),
            screenshot_dir=Path(get_setting("SCREENSHOT_DIR", "screenshots") or "screenshots"),
            screenshot_prefix=get_setting("CAS_SCREENSHOT_PREFIX", "cas") or "cas",
            mail_viewer_url=get_setting("CAS_MAIL_VIEWER_URL", DEFAULT_MAIL_VIEWER_URL)
            or DEFAULT_MAIL_VIEWER_URL,
            verify_tls=_get_bool("CAS_VERIFY_TLS", False),
            browser=BrowserOptions.from_env(),
        )

    def url(self, path: str) -> str:
        """Return an absolute URL below the CAS base URL."""
        return urljoin(self.cas_base_url.rstrip("/") + "/", path.lstrip("/"))

    def login_url(self, service: Optional[str] = None) -> str:
        url = self.url("login")
        if service:
            url += "?" + urlencode({"service": service})
        return url

    def logout_url(self, service: Optional[str] = None) -> str:
        url = self.url("logout")
        if service:
            url += "?" + urlencode({"service": service})
        return url
