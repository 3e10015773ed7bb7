"""Out-of-band HTTP client for the server's ticket validation endpoints.

Bodies are returned as text and never parsed here; see
``cas_ui_tests.protocol`` for decoding JSON and XML service responses.
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx

from cas_ui_tests.config import HarnessConfig
from cas_ui_tests.errors import RequestError
from cas_ui_tests.protocol import validation_url

logger = logging.getLogger(__name__)

Headers = Optional[Dict[str, str]]


@dataclass
class RequestResult:
    """Outcome of a request: either a response or the error that prevented one."""

    url: str
    status_code: Optional[int] = None
    body: str = ""
    headers: Optional[Dict[str, str]] = None
    error: Optional[RequestError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        """Return the body or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.body


class ValidationClient:
    """Issues GET requests with relaxed TLS verification for test endpoints.

    Example:
        async with ValidationClient(config) as client:
            body = await client.do_request(url)
    """

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or HarnessConfig()
        self._client = httpx.AsyncClient(
            verify=self.config.verify_tls,
            timeout=self.config.request_timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> "ValidationClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch(self, url: str, headers: Headers = None) -> RequestResult:
        """Issue a GET and capture the outcome without raising."""
        logger.debug("GET %s", url)
        try:
            response = await self._client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            error = RequestError(
                operation="request",
                payload={"url": url},
                message=f"{type(exc).__name__}: {exc}",
            )
            return RequestResult(url=url, error=error)

        result = RequestResult(
            url=url,
            status_code=response.status_code,
            body=response.text,
            headers=dict(response.headers),
        )
        if not response.is_success:
            result.error = RequestError(
                operation="request",
                payload={"url": url, "body": response.text[:500]},
                message=response.reason_phrase or "unexpected status",
                status_code=response.status_code,
            )
        logger.debug("GET %s -> %s", url, response.status_code)
        return result

    async def do_request(self, url: str, headers: Headers = None) -> str:
        """Issue a GET and return the raw body; raise RequestError on failure."""
        result = await self.fetch(url, headers=headers)
        return result.unwrap()

    async def do_get(
        self,
        url: str,
        on_success: Callable[[RequestResult], Union[Any, Awaitable[Any]]],
        on_error: Callable[[RequestError], Union[Any, Awaitable[Any]]],
        headers: Headers = None,
    ) -> Any:
        """Callback-style GET that branches on the outcome.

        Exactly one handler runs; its return value (awaited when it is a
        coroutine) is returned. A handler that raises ends the scenario.
        """
        result = await self.fetch(url, headers=headers)
        if result.ok:
            outcome = on_success(result)
        else:
            outcome = on_error(result.error)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome

    async def validate(
        self,
        service: str,
        ticket: str,
        endpoint: str = "p3/serviceValidate",
        format: Optional[str] = "JSON",
        pgt_url: Optional[str] = None,
    ) -> str:
        """Validate ``ticket`` for ``service`` and return the raw response body."""
        url = validation_url(
            self.config.cas_base_url,
            service,
            ticket,
            endpoint=endpoint,
            format=format,
            pgt_url=pgt_url,
        )
        return await self.do_request(url)
