"""Tests for the browser session controller with a stubbed Playwright driver."""
import dataclasses

import pytest
import pytest_asyncio
from playwright.async_api import Error as PlaywrightError

from conftest import FakePage

from cas_ui_tests import session as session_module
from cas_ui_tests.config import BrowserOptions
from cas_ui_tests.errors import LaunchError
from cas_ui_tests.session import CasSession, cas_session


class StubContext:
    def __init__(self, kwargs):
        self.kwargs = kwargs
        self.default_timeout = None
        self.navigation_timeout = None
        self.closed = False

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    def set_default_navigation_timeout(self, timeout):
        self.navigation_timeout = timeout

    async def new_page(self):
        return FakePage()

    async def close(self):
        self.closed = True


class StubBrowser:
    def __init__(self, kwargs):
        self.kwargs = kwargs
        self.contexts = []
        self.closed = False

    async def new_context(self, **kwargs):
        context = StubContext(kwargs)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class StubLauncher:
    def __init__(self, error=None):
        self.error = error
        self.browsers = []

    async def launch(self, **kwargs):
        if self.error:
            raise self.error
        browser = StubBrowser(kwargs)
        self.browsers.append(browser)
        return browser


class StubPlaywright:
    def __init__(self, error=None):
        self.chromium = StubLauncher(error)
        self.firefox = StubLauncher(error)
        self.webkit = StubLauncher(error)
        self.stopped = False

    async def stop(self):
        self.stopped = True


@pytest.fixture
def driver(monkeypatch):
    """Replace async_playwright() with a stub whose launchers record their options."""
    state = {"error": None, "instances": []}

    class Starter:
        async def start(self):
            instance = StubPlaywright(state["error"])
            state["instances"].append(instance)
            return instance

    monkeypatch.setattr(session_module, "async_playwright", lambda: Starter())
    return state


@pytest_asyncio.fixture()
async def launched(config, driver):
    async with cas_session(config) as session:
        yield session


def test_unsupported_browser_type(config):
    with pytest.raises(ValueError):
        CasSession(config, BrowserOptions(browser_type="opera"))


def test_context_before_launch(config):
    with pytest.raises(RuntimeError):
        CasSession(config).context


@pytest.mark.asyncio
async def test_close_before_launch_is_noop(config):
    await CasSession(config).close()


@pytest.mark.asyncio
async def test_launch_applies_fixed_options(config, driver):
    async with CasSession(config) as session:
        playwright = driver["instances"][0]
        browser = playwright.chromium.browsers[0]
        context = browser.contexts[0]
        assert browser.kwargs == {"headless": True, "slow_mo": 0, "args": ["--start-maximized"]}
        assert context.kwargs == {
            "ignore_https_errors": True,
            "viewport": {"width": 1920, "height": 1080},
        }
        assert context.default_timeout == config.element_timeout * 1000
        assert context.navigation_timeout == config.navigation_timeout * 1000
        assert session.context is context
    assert context.closed and browser.closed and playwright.stopped


@pytest.mark.asyncio
async def test_non_chromium_gets_no_chromium_args(config, driver):
    options = dataclasses.replace(config.browser, browser_type="firefox", headless=False)
    async with CasSession(config, options):
        browser = driver["instances"][0].firefox.browsers[0]
        assert browser.kwargs == {"headless": False, "slow_mo": 0}


@pytest.mark.asyncio
async def test_launch_failure_is_launch_error(config, driver):
    driver["error"] = PlaywrightError("Executable doesn't exist")
    with pytest.raises(LaunchError) as excinfo:
        await session_module.launch(config)
    assert excinfo.value.payload == {"browser_type": "chromium"}
    assert "Executable" in excinfo.value.message
    assert driver["instances"][0].stopped


@pytest.mark.asyncio
async def test_pages_share_context_and_first_is_active(launched):
    login = await launched.new_page()
    mail = await launched.new_page(name="mail-viewer")
    assert launched.active_page is login
    assert [p.name for p in launched.pages] == ["page1", "mail-viewer"]

    await mail.bring_to_front()
    assert launched.active_page is mail

    await mail.close()
    assert mail.page.closed
    assert launched.pages == [login]
    assert launched.active_page is login


@pytest.mark.asyncio
async def test_session_closed_when_scenario_raises(config, driver):
    with pytest.raises(AssertionError):
        async with cas_session(config) as session:
            page = await session.new_page()
            raise AssertionError("scenario failed")
    assert page.page.closed
    assert driver["instances"][0].stopped


@pytest.mark.asyncio
async def test_teardown_continues_after_context_close_fails(config, driver, caplog):
    async def crashed():
        raise PlaywrightError("Target page, context or browser has been closed")

    with pytest.raises(AssertionError, match="scenario failed"):
        async with cas_session(config) as session:
            session.context.close = crashed
            raise AssertionError("scenario failed")

    playwright = driver["instances"][0]
    assert playwright.chromium.browsers[0].closed
    assert playwright.stopped
    assert "Error closing browser context" in caplog.text
    with pytest.raises(RuntimeError):
        session.context


@pytest.mark.asyncio
async def test_close_is_idempotent(config, driver):
    session = await session_module.launch(config)
    await session.close()
    await session.close()
    assert driver["instances"][0].stopped
