"""Delegated login through ADFS followed by an emailed one-time code."""
from __future__ import annotations

from cas_ui_tests import diagnostics
from cas_ui_tests.config import require_env
from cas_ui_tests.mailbox import read_code_from_viewer
from cas_ui_tests.protocol import parse_json
from cas_ui_tests.scenarios import scenario
from cas_ui_tests.validation import ValidationClient

SERVICE = "https://localhost:9859/anything/cas"
EXPECTED_ATTRIBUTES = ("firstname", "lastname", "uid", "upn", "username", "surname", "email")


@scenario("adfs-login-mfa")
async def adfs_login_mfa(session) -> None:
    username = require_env("ADFS_USERNAME")
    password = require_env("ADFS_PASSWORD")

    page = await session.new_page()
    diagnostics.log(f"Navigating to {SERVICE}")
    await page.goto_login(SERVICE)
    await page.click("div .idp span")
    await page.screenshot("adfs-login")

    await page.type("#userNameInput", username, obfuscate=True)
    await page.type("#passwordInput", password, obfuscate=True)
    await page.submit_form("#loginForm")
    await page.assert_visibility("#token")
    await page.screenshot("mfa-token")

    code = await read_code_from_viewer(session)
    await page.bring_to_front()
    await page.type("#token", code)
    await page.submit_form("#fm1")
    page.log_page()

    ticket = await page.assert_ticket_parameter()
    await page.goto_login()
    await page.assert_cookie()

    async with ValidationClient(session.config) as client:
        body = await client.validate(SERVICE, ticket, format="JSON")
    diagnostics.log(body)

    response = parse_json(body).assert_success()
    assert "casuser@apereo.org" in response.user, response.user
    response.assert_attributes(*EXPECTED_ATTRIBUTES)
