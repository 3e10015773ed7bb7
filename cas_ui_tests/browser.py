"""Page handle with the interaction vocabulary scenarios are written in."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional

from playwright.async_api import ElementHandle, Page, Response
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from cas_ui_tests import diagnostics
from cas_ui_tests.config import HarnessConfig
from cas_ui_tests.errors import ElementNotFoundError, HarnessError, MissingTicketError, NavigationError
from cas_ui_tests.tickets import extract_ticket, find_cookie
from cas_ui_tests.waits import WaitTimeout, poll_until

if TYPE_CHECKING:
    from cas_ui_tests.session import CasSession

logger = logging.getLogger(__name__)


def _ms(seconds: float) -> float:
    return seconds * 1000


class CasPage:
    """One browsing context of a session, driven by selector-based primitives.

    Every primitive that needs an element waits for it with a bounded poll
    (``config.element_timeout``) and raises :class:`ElementNotFoundError`
    when the selector never resolves. Assertions poll the same way and raise
    ``AssertionError`` with the selector, URL and observed value.
    """

    def __init__(
        self,
        page: Page,
        config: HarnessConfig,
        session: Optional["CasSession"] = None,
        name: str = "page",
    ) -> None:
        self._page = page
        self.config = config
        self.session = session
        self.name = name

    def __repr__(self) -> str:
        return f"CasPage(name={self.name!r}, url={self._page.url!r})"

    @property
    def page(self) -> Page:
        """The underlying Playwright page."""
        return self._page

    @property
    def url(self) -> str:
        return self._page.url

    async def title(self) -> str:
        return await self._page.title()

    # ---- waiting ------------------------------------------------------------------
    async def _poll(
        self,
        probe: Callable[[], Awaitable[Any]],
        predicate: Callable[[Any], bool],
        description: str,
        timeout: Optional[float] = None,
    ) -> Any:
        return await poll_until(
            probe,
            predicate,
            timeout=self.config.element_timeout if timeout is None else timeout,
            interval=self.config.poll_interval,
            description=description,
        )

    async def find(self, selector: str, timeout: Optional[float] = None) -> ElementHandle:
        """Resolve ``selector`` to its first element, waiting up to the element timeout."""

        async def probe() -> List[ElementHandle]:
            return await self._page.query_selector_all(selector)

        try:
            elements = await self._poll(probe, bool, f"selector {selector!r}", timeout)
        except WaitTimeout as exc:
            raise ElementNotFoundError(
                operation="find",
                payload={"selector": selector, "url": self.url, "timeout": exc.timeout},
                message=str(exc),
            ) from exc
        if len(elements) > 1:
            logger.debug("%d elements match %r, using the first", len(elements), selector)
        return elements[0]

    @asynccontextmanager
    async def _navigation(self) -> AsyncIterator[None]:
        """Wait for the navigation an action may trigger.

        Actions that do not navigate (client-side validation re-rendering the
        same page) fall back to waiting for the current load state.
        """
        action_done = False
        try:
            async with self._page.expect_navigation(
                wait_until="load", timeout=_ms(self.config.element_timeout)
            ):
                yield
                action_done = True
        except PlaywrightTimeout:
            # A timeout raised by the action itself propagates.
            if not action_done:
                raise
            await self._page.wait_for_load_state("load", timeout=_ms(self.config.navigation_timeout))

    # ---- navigation ---------------------------------------------------------------
    async def goto(self, url: str, wait_until: str = "load") -> Optional[Response]:
        """Navigate and wait for the load event; non-2xx answers are errors."""
        logger.info("Navigating to %s", url)
        try:
            response = await self._page.goto(
                url, wait_until=wait_until, timeout=_ms(self.config.navigation_timeout)
            )
        except PlaywrightError as exc:
            raise NavigationError(
                operation="goto", payload={"url": url, "wait_until": wait_until}, message=str(exc)
            ) from exc
        if response is not None and not response.ok:
            raise NavigationError(
                operation="goto",
                payload={"url": url, "final_url": self.url, "status": response.status},
                message=f"HTTP {response.status}",
            )
        return response

    async def goto_login(self, service: Optional[str] = None) -> Optional[Response]:
        return await self.goto(self.config.login_url(service))

    async def goto_logout(self, service: Optional[str] = None) -> Optional[Response]:
        return await self.goto(self.config.logout_url(service))

    async def bring_to_front(self) -> None:
        """Make this page the active interaction target of its session."""
        await self._page.bring_to_front()
        if self.session is not None:
            self.session.active_page = self

    # ---- interaction --------------------------------------------------------------
    async def click(self, selector: str) -> None:
        element = await self.find(selector)
        logger.info("Clicking element %s", selector)
        try:
            await element.click()
        except PlaywrightError as exc:
            raise HarnessError(
                operation="click", payload={"selector": selector, "url": self.url}, message=str(exc)
            ) from exc

    async def type(
        self,
        selector: str,
        value: str,
        clear_first: bool = True,
        obfuscate: bool = False,
    ) -> None:
        """Type ``value`` into a field; ``obfuscate`` keeps secrets out of the log."""
        shown = f"{value[:3]}..." if obfuscate else value
        element = await self.find(selector)
        logger.info("Typing %s in field %s", shown, selector)
        try:
            if clear_first:
                await element.fill("")
            await element.type(value)
        except PlaywrightError as exc:
            raise HarnessError(
                operation="type",
                payload={"selector": selector, "value": shown, "url": self.url},
                message=str(exc),
            ) from exc

    async def submit_form(self, selector: str) -> None:
        element = await self.find(selector)
        logger.info("Submitting form %s", selector)
        try:
            async with self._navigation():
                await element.evaluate("form => form.submit()")
        except PlaywrightError as exc:
            raise HarnessError(
                operation="submit_form", payload={"selector": selector, "url": self.url}, message=str(exc)
            ) from exc

    async def press_enter(self, wait_for_navigation: bool = True) -> None:
        try:
            if wait_for_navigation:
                async with self._navigation():
                    await self._page.keyboard.press("Enter")
            else:
                await self._page.keyboard.press("Enter")
        except PlaywrightError as exc:
            raise HarnessError(operation="press_enter", payload={"url": self.url}, message=str(exc)) from exc

    async def login_with(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        username_field: str = "#username",
        password_field: str = "#password",
    ) -> None:
        """Fill and submit the standard username/password form."""
        username = username or self.config.default_username
        password = password or self.config.default_password
        logger.info("Logging in with %s", username)
        await self.type(username_field, username)
        await self.type(password_field, password, obfuscate=True)
        await self.press_enter()

    # ---- reading ------------------------------------------------------------------
    async def text_content(self, selector: str) -> str:
        element = await self.find(selector)
        text = (await element.text_content() or "").strip()
        logger.debug("Text content of %s: %s", selector, text)
        return text

    async def is_visible(self, selector: str) -> bool:
        """Visibility right now; a missing element counts as not visible."""
        element = await self._page.query_selector(selector)
        if element is None:
            return False
        return await element.is_visible()

    async def _assert_visibility(self, selector: str, expected: bool, timeout: Optional[float]) -> None:
        state = "visible" if expected else "invisible"
        try:
            await self._poll(
                lambda: self.is_visible(selector),
                lambda visible: visible is expected,
                f"{selector!r} to be {state}",
                timeout,
            )
        except WaitTimeout as exc:
            raise AssertionError(
                f"Expected {selector!r} to be {state} on {self.url}; {exc}"
            ) from exc
        logger.info("Element %s is %s", selector, state)

    async def assert_visibility(self, selector: str, timeout: Optional[float] = None) -> None:
        await self._assert_visibility(selector, True, timeout)

    async def assert_invisibility(self, selector: str, timeout: Optional[float] = None) -> None:
        await self._assert_visibility(selector, False, timeout)

    async def assert_inner_text_starts_with(
        self, selector: str, prefix: str, timeout: Optional[float] = None
    ) -> str:
        await self.find(selector, timeout)

        # Re-resolved on every attempt: the node may be replaced by a re-render.
        async def read_text() -> Optional[str]:
            element = await self._page.query_selector(selector)
            if element is None:
                return None
            return (await element.inner_text()).strip()

        try:
            text = await self._poll(
                read_text,
                lambda value: value is not None and value.startswith(prefix),
                f"{selector!r} text to start with {prefix!r}",
                timeout,
            )
        except WaitTimeout as exc:
            raise AssertionError(
                f"Text of {selector!r} on {self.url} does not start with {prefix!r}: "
                f"actual={exc.last_value!r}"
            ) from exc
        return text

    # ---- cookies and tickets ------------------------------------------------------
    async def cookies(self) -> List[Dict[str, Any]]:
        """Cookies the browser would send to the current URL."""
        return [dict(cookie) for cookie in await self._page.context.cookies(self.url)]

    async def assert_cookie(self, name: Optional[str] = None) -> Mapping[str, Any]:
        """Fail unless the session cookie is present for the current page."""
        name = name or self.config.cookie_name
        cookies = await self.cookies()
        cookie = find_cookie(cookies, name)
        if cookie is None or not cookie.get("value"):
            raise AssertionError(
                f"Cookie {name!r} missing on {self.url}; present: {[c.get('name') for c in cookies]}"
            )
        logger.info("Cookie %s is present", name)
        return cookie

    async def assert_no_cookie(self, name: Optional[str] = None) -> None:
        """Fail if the session cookie still carries a value (e.g. after logout)."""
        name = name or self.config.cookie_name
        cookie = find_cookie(await self.cookies(), name)
        if cookie is not None and cookie.get("value"):
            raise AssertionError(f"Cookie {name!r} is still set on {self.url}")
        logger.info("Cookie %s is absent", name)

    async def assert_ticket_parameter(self, timeout: Optional[float] = None) -> str:
        """Return the ticket from the current URL once the login redirect lands."""

        async def probe() -> Optional[str]:
            return extract_ticket(self._page.url)

        try:
            ticket = await self._poll(probe, bool, "ticket parameter in page URL", timeout)
        except WaitTimeout as exc:
            raise MissingTicketError(
                operation="assert_ticket_parameter",
                payload={"url": self.url},
                message="no ticket query parameter after login",
            ) from exc
        logger.info("Ticket found: %s", ticket)
        return ticket

    # ---- diagnostics --------------------------------------------------------------
    async def screenshot(self, name: Optional[str] = None):
        return await diagnostics.screenshot(self._page, self.config, name or self.name)

    def log_page(self) -> Optional[str]:
        return diagnostics.log_page(self._page)

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close_page(self)
        else:
            await self._page.close()
