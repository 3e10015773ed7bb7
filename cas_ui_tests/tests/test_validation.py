"""Tests for the out-of-band validation client using httpx.MockTransport."""
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from cas_ui_tests.errors import RequestError
from cas_ui_tests.validation import RequestResult, ValidationClient

pytestmark = pytest.mark.asyncio


def make_client(config, handler):
    return ValidationClient(config, transport=httpx.MockTransport(handler))


class TestDoRequest:

    async def test_returns_raw_body(self, config):
        def handler(request):
            return httpx.Response(200, text="yes\ncasuser\n")

        async with make_client(config, handler) as client:
            body = await client.do_request("https://cas.example.org/cas/validate?ticket=ST-1")
        assert body == "yes\ncasuser\n"

    async def test_error_status_raises_with_status_code(self, config):
        def handler(request):
            return httpx.Response(404, text="no such endpoint")

        async with make_client(config, handler) as client:
            with pytest.raises(RequestError) as excinfo:
                await client.do_request("https://cas.example.org/cas/missing")
        error = excinfo.value
        assert error.status_code == 404
        assert error.payload["url"] == "https://cas.example.org/cas/missing"
        assert error.payload["body"] == "no such endpoint"
        assert "HTTP 404" in str(error)

    async def test_transport_error_has_no_status(self, config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(config, handler) as client:
            with pytest.raises(RequestError) as excinfo:
                await client.do_request("https://cas.example.org/cas/login")
        assert excinfo.value.status_code is None
        assert "ConnectError" in excinfo.value.message
        assert "no response" in str(excinfo.value)

    async def test_headers_are_sent(self, config):
        seen = {}

        def handler(request):
            seen["content-type"] = request.headers.get("Content-Type")
            return httpx.Response(200, json={"status": "UP"})

        async with make_client(config, handler) as client:
            await client.do_request(
                "https://cas.example.org/cas/actuator/health",
                headers={"Content-Type": "application/json"},
            )
        assert seen["content-type"] == "application/json"


class TestDoGet:

    async def test_success_callback_receives_result(self, config):
        def handler(request):
            return httpx.Response(200, json={"status": "UP"})

        errors = []
        async with make_client(config, handler) as client:
            outcome = await client.do_get(
                "https://cas.example.org/cas/actuator/health",
                on_success=lambda result: result,
                on_error=errors.append,
            )
        assert isinstance(outcome, RequestResult)
        assert outcome.status_code == 200
        assert '"UP"' in outcome.body
        assert errors == []

    async def test_error_callback_receives_error(self, config):
        def handler(request):
            return httpx.Response(503, text="down")

        successes = []
        async with make_client(config, handler) as client:
            outcome = await client.do_get(
                "https://cas.example.org/cas/actuator/health",
                on_success=successes.append,
                on_error=lambda error: error.status_code,
            )
        assert outcome == 503
        assert successes == []

    async def test_async_callbacks_are_awaited(self, config):
        def handler(request):
            return httpx.Response(200, text="ok")

        async def on_success(result):
            return result.body.upper()

        async def on_error(error):
            raise AssertionError("error handler should not run")

        async with make_client(config, handler) as client:
            outcome = await client.do_get("https://cas.example.org/cas/", on_success, on_error)
        assert outcome == "OK"

    async def test_raising_handler_propagates(self, config):
        def handler(request):
            return httpx.Response(500, text="boom")

        def on_error(error):
            raise error

        async with make_client(config, handler) as client:
            with pytest.raises(RequestError):
                await client.do_get("https://cas.example.org/cas/", lambda result: None, on_error)


class TestValidate:

    async def test_builds_protocol_url(self, config):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, text='{"serviceResponse": {}}')

        async with make_client(config, handler) as client:
            body = await client.validate(
                "https://apereo.github.io",
                "ST-1-abc",
                endpoint="p3/proxyValidate",
                pgt_url="https://github.com/apereo/cas",
            )
        assert body == '{"serviceResponse": {}}'
        parts = urlsplit(str(seen[0]))
        assert parts.path == "/cas/p3/proxyValidate"
        assert parse_qs(parts.query) == {
            "service": ["https://apereo.github.io"],
            "ticket": ["ST-1-abc"],
            "format": ["JSON"],
            "pgtUrl": ["https://github.com/apereo/cas"],
        }

    async def test_xml_format(self, config):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, text="<cas:serviceResponse/>")

        async with make_client(config, handler) as client:
            await client.validate("https://app", "ST-2", format="XML")
        assert parse_qs(urlsplit(str(seen[0])).query)["format"] == ["XML"]
