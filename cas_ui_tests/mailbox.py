"""Out-of-band retrieval of one-time codes sent by the server.

Two ways to read the code a multifactor flow mails out:

* :func:`read_code_from_viewer` scrapes the mail viewer web UI on a second
  page of the same session, the way a user would.
* :class:`MailpitClient` talks to the Mailpit REST API directly.

Configuration:
    CAS_MAIL_VIEWER_URL     web UI scraped by read_code_from_viewer
    MAILPIT_URL             Mailpit base URL (REST API at /api/v1)
    MAILPIT_USERNAME/PASSWORD  optional basic auth for the API
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

import httpx
from anyio import to_thread

from cas_ui_tests.waits import poll_until

if TYPE_CHECKING:
    from cas_ui_tests.session import CasSession

logger = logging.getLogger(__name__)

MESSAGE_LINK_SELECTOR = "table tbody td a"
MESSAGE_BODY_SELECTOR = "div[name=bodyPlainText] .well"
DEFAULT_CODE_PATTERN = r"\b(\d{6,8})\b"


async def read_code_from_viewer(
    session: "CasSession",
    viewer_url: Optional[str] = None,
    link_selector: str = MESSAGE_LINK_SELECTOR,
    body_selector: str = MESSAGE_BODY_SELECTOR,
) -> str:
    """Open the newest message in the mail viewer and return its body text.

    The helper page is closed afterwards; the caller brings its own page
    back to the front before continuing the login flow.
    """
    viewer_url = viewer_url or session.config.mail_viewer_url
    page = await session.new_page(name="mail-viewer")
    try:
        await page.bring_to_front()
        await page.goto(viewer_url)
        await page.click(link_selector)
        code = await page.text_content(body_selector)
    finally:
        await page.close()
    logger.info("Read one-time code from %s", viewer_url)
    return code


def extract_code(text: str, pattern: str = DEFAULT_CODE_PATTERN) -> Optional[str]:
    match = re.search(pattern, text)
    if not match:
        return None
    return match.group(1) if match.groups() else match.group(0)


@dataclass
class MailpitMessage:
    id: str
    subject: str
    to: list[str]
    text: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MailpitMessage":
        return cls(
            id=data.get("ID", ""),
            subject=data.get("Subject", ""),
            to=[a.get("Address", "") for a in (data.get("To") or [])],
            text=data.get("Text", "") or data.get("Snippet", ""),
        )


class MailpitClient:
    """Synchronous client for the Mailpit REST API.

    Usage:
        with MailpitClient() as mailpit:
            mailpit.clear()
            # ... trigger the MFA mail ...
            code = await mailpit.wait_for_code(timeout=10.0)
    """

    _DEFAULT_BASE_URL = "http://localhost:8025"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        username: Optional[str] = None,
        password: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or os.environ.get("MAILPIT_URL") or self._DEFAULT_BASE_URL).rstrip("/")
        self.api_url = f"{self.base_url}/api/v1"
        username = username or os.environ.get("MAILPIT_USERNAME")
        password = password or os.environ.get("MAILPIT_PASSWORD")
        auth = (username, password) if username and password else None
        self._client = httpx.Client(timeout=timeout, auth=auth, transport=transport)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        response = self._client.request(method, f"{self.api_url}{endpoint}", **kwargs)
        response.raise_for_status()
        return response

    def list_messages(self, limit: int = 50) -> list[MailpitMessage]:
        data = self._request("GET", "/messages", params={"limit": limit}).json()
        return [MailpitMessage.from_dict(m) for m in data.get("messages") or []]

    def get_message(self, message_id: str) -> MailpitMessage:
        return MailpitMessage.from_dict(self._request("GET", f"/message/{message_id}").json())

    def clear(self) -> None:
        """Delete all messages in the mailbox."""
        self._request("DELETE", "/messages")

    async def wait_for_message(
        self,
        predicate: Optional[Callable[[MailpitMessage], bool]] = None,
        timeout: float = 10.0,
        poll_interval: float = 0.5,
    ) -> MailpitMessage:
        """Poll until a message matches ``predicate`` and return it in full."""

        async def probe() -> Optional[MailpitMessage]:
            messages = await to_thread.run_sync(self.list_messages)
            for summary in messages:
                if predicate is None or predicate(summary):
                    return await to_thread.run_sync(self.get_message, summary.id)
            return None

        return await poll_until(
            probe,
            lambda message: message is not None,
            timeout=timeout,
            interval=poll_interval,
            backoff=1.0,
            description="a matching Mailpit message",
        )

    async def wait_for_code(
        self,
        pattern: str = DEFAULT_CODE_PATTERN,
        predicate: Optional[Callable[[MailpitMessage], bool]] = None,
        timeout: float = 10.0,
    ) -> str:
        message = await self.wait_for_message(predicate, timeout=timeout)
        code = extract_code(message.text, pattern)
        if code is None:
            raise AssertionError(f"No code matching {pattern!r} in message {message.id}: {message.text[:200]!r}")
        return code

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "MailpitClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
