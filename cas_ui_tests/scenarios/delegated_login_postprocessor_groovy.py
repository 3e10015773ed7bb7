"""Delegated login to a second CAS server, then single sign-on on return."""
from __future__ import annotations

from cas_ui_tests import diagnostics
from cas_ui_tests.scenarios import scenario

SERVICE = "https://localhost:9859/anything/cas"
DELEGATED_LOGIN_URL = "https://localhost:8444/cas/login"


@scenario("delegated-login-postprocessor-groovy")
async def delegated_login_postprocessor_groovy(session) -> None:
    page = await session.new_page()

    await page.goto_login(SERVICE)
    diagnostics.log("Checking for page URL...")
    url = page.log_page()
    assert url.startswith(DELEGATED_LOGIN_URL), url

    await page.login_with()
    url = page.log_page()
    assert url.startswith(SERVICE), url
    await page.assert_ticket_parameter()

    diagnostics.log("Attempting login after SSO...")
    await page.goto_login(SERVICE)
    page.log_page()
    await page.assert_ticket_parameter()
