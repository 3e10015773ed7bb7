"""Registered end-to-end scenarios.

A scenario is ``async def fn(session: CasSession) -> None``. It opens the
pages it needs from the session and raises on the first failed assertion.
"""
from __future__ import annotations

from importlib import import_module
from typing import Awaitable, Callable, Dict, TYPE_CHECKING

if TYPE_CHECKING:
    from cas_ui_tests.session import CasSession

Scenario = Callable[["CasSession"], Awaitable[None]]

SCENARIOS: Dict[str, Scenario] = {}

_MODULES = (
    "adfs_login_mfa",
    "delegated_login_postprocessor_groovy",
    "dynamodb_ticket_service_registry",
    "mfa_provider_selection_trigger_groovy",
    "passwordless_login_with_password_surrogate",
    "ticket_validation_casv3_pgtiou",
)


def scenario(name: str) -> Callable[[Scenario], Scenario]:
    """Register ``fn`` under ``name``."""

    def register(fn: Scenario) -> Scenario:
        if name in SCENARIOS and SCENARIOS[name] is not fn:
            raise ValueError(f"Scenario {name!r} is already registered")
        fn.scenario_name = name
        SCENARIOS[name] = fn
        return fn

    return register


def load_scenarios() -> Dict[str, Scenario]:
    """Import the bundled scenario modules and return the registry."""
    for module in _MODULES:
        import_module(f"{__name__}.{module}")
    return SCENARIOS
