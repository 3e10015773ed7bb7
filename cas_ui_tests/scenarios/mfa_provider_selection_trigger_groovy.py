"""A Groovy trigger offers a choice of multifactor providers after login."""
from __future__ import annotations

from cas_ui_tests.scenarios import scenario

SERVICE = "https://apereo.github.io"


@scenario("mfa-provider-selection-trigger-groovy")
async def mfa_provider_selection_trigger_groovy(session) -> None:
    page = await session.new_page()
    await page.goto_login(SERVICE)
    await page.login_with()
    await page.assert_visibility("#mfa-gauth")
    await page.assert_visibility("#mfa-webauthn")
