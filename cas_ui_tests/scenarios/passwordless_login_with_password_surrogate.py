"""Passwordless identifier entry with a surrogate, then a password challenge."""
from __future__ import annotations

from cas_ui_tests.scenarios import scenario

SURROGATE_IDENTIFIER = "user3+casuser"


@scenario("passwordless-login-with-password-surrogate")
async def passwordless_login_with_password_surrogate(session) -> None:
    page = await session.new_page()
    await page.goto_login()

    # Only the identifier is asked for first.
    assert await page.page.query_selector("#password") is None, "password field rendered before identifier"

    await page.type("#username", SURROGATE_IDENTIFIER)
    await page.press_enter()

    await page.assert_invisibility("#username")
    await page.assert_visibility("#password")

    await page.type("#password", session.config.default_password, obfuscate=True)
    await page.press_enter()

    await page.assert_cookie()
    await page.assert_inner_text_starts_with("#content div p", "You, user3, have successfully logged in")

    await page.click("#auth-tab")
    await page.type("#attribute-tab-1 input[type=search]", "surrogate")
    await page.screenshot("surrogate-attributes")

    await page.assert_inner_text_starts_with("#surrogateEnabled td code kbd", "[true]")
    await page.assert_inner_text_starts_with("#surrogatePrincipal td code kbd", "[casuser]")
    await page.assert_inner_text_starts_with("#surrogateUser td code kbd", "[user3]")
