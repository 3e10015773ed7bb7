"""Error taxonomy shared by every harness operation.

All harness errors are fatal to the enclosing scenario. They carry the
operation name plus a payload with whatever context is needed to diagnose
the failure without re-running it (URL, selector, status code, ...).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class HarnessError(Exception):
    """Raised when a browser or protocol operation fails."""

    operation: str
    payload: Dict[str, Any] = field(default_factory=dict)
    message: str = ""

    def __str__(self) -> str:
        return f"{self.operation} failed ({self.message}) with payload={self.payload}"


@dataclass(eq=False)
class LaunchError(HarnessError):
    """The browser process could not be started."""


@dataclass(eq=False)
class NavigationError(HarnessError):
    """A page failed to load, answered with an error status or looped."""


@dataclass(eq=False)
class ElementNotFoundError(HarnessError):
    """A selector did not resolve to any element within the wait timeout."""


@dataclass(eq=False)
class RequestError(HarnessError):
    """An out-of-band HTTP request failed or returned a non-success status."""

    status_code: Optional[int] = None

    def __str__(self) -> str:
        status = f"HTTP {self.status_code}" if self.status_code is not None else "no response"
        return f"{self.operation} failed ({status}: {self.message}) with payload={self.payload}"


@dataclass(eq=False)
class MissingTicketError(HarnessError, AssertionError):
    """No ticket parameter was present in the post-login URL."""


@dataclass(eq=False)
class ConfigurationError(HarnessError):
    """A required setting or environment secret is missing."""
