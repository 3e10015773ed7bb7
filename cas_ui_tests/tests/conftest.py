import sys
from contextlib import asynccontextmanager
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from playwright.async_api import TimeoutError as PlaywrightTimeout

from cas_ui_tests.browser import CasPage
from cas_ui_tests.config import HarnessConfig


# ============================================================================
# In-memory stand-ins for the Playwright objects CasPage talks to
# ============================================================================

class FakeResponse:
    def __init__(self, status: int = 200, final_url: Optional[str] = None):
        self.status = status
        self.final_url = final_url

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299


class FakeElement:
    """Element whose presence, visibility and text can change between polls."""

    def __init__(
        self,
        page: "FakePage",
        selector: str,
        text: str = "",
        visible: bool = True,
        appear_after: int = 0,
        texts: Optional[List[str]] = None,
        on_click: Optional[Callable[[], None]] = None,
        on_submit: Optional[Callable[[], None]] = None,
    ):
        self.page = page
        self.selector = selector
        self.text = text
        self.visible = visible
        self.appear_after = appear_after
        self.texts = list(texts or [])
        self.on_click = on_click
        self.on_submit = on_submit
        self.value = ""

    async def click(self) -> None:
        self.page.actions.append(("click", self.selector))
        if self.on_click:
            self.on_click()

    async def fill(self, value: str) -> None:
        self.page.actions.append(("fill", self.selector, value))
        self.value = value

    async def type(self, value: str) -> None:
        self.page.actions.append(("type", self.selector, value))
        self.value += value

    async def evaluate(self, expression: str) -> Any:
        self.page.actions.append(("evaluate", self.selector, expression))
        if self.on_submit:
            self.on_submit()

    async def text_content(self) -> str:
        return self.text

    async def inner_text(self) -> str:
        if self.texts:
            self.text = self.texts.pop(0)
        return self.text

    async def is_visible(self) -> bool:
        return self.visible


class FakeKeyboard:
    def __init__(self, page: "FakePage"):
        self.page = page

    async def press(self, key: str) -> None:
        self.page.actions.append(("press", key))
        if key == "Enter" and self.page.on_enter:
            self.page.on_enter()


class FakeContext:
    def __init__(self):
        self.cookie_jar: List[Dict[str, Any]] = []
        self.requested_urls: List[Any] = []

    async def cookies(self, urls=None) -> List[Dict[str, Any]]:
        self.requested_urls.append(urls)
        return [dict(cookie) for cookie in self.cookie_jar]


class FakePage:
    def __init__(self):
        self.url = "about:blank"
        self.elements: Dict[str, List[FakeElement]] = {}
        self.responses: Dict[str, Any] = {}
        self.actions: List[tuple] = []
        self.context = FakeContext()
        self.keyboard = FakeKeyboard(self)
        self.on_enter: Optional[Callable[[], None]] = None
        self.navigations = 0
        self.screenshot_error: Optional[Exception] = None
        self.closed = False

    def add(self, selector: str, **kwargs: Any) -> FakeElement:
        element = FakeElement(self, selector, **kwargs)
        self.elements.setdefault(selector, []).append(element)
        return element

    def navigate(self, url: str) -> None:
        self.url = url
        self.navigations += 1

    async def goto(self, url: str, wait_until: str = "load", timeout: float = None):
        self.actions.append(("goto", url))
        outcome = self.responses.get(url, FakeResponse())
        if isinstance(outcome, Exception):
            raise outcome
        self.navigate(outcome.final_url or url)
        return outcome

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        present = []
        for element in self.elements.get(selector, []):
            if element.appear_after > 0:
                element.appear_after -= 1
                continue
            present.append(element)
        return present

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        present = await self.query_selector_all(selector)
        return present[0] if present else None

    @asynccontextmanager
    async def expect_navigation(self, wait_until: str = "load", timeout: float = None):
        before = self.navigations
        yield
        if self.navigations == before:
            raise PlaywrightTimeout("Timeout exceeded while waiting for navigation")

    async def wait_for_load_state(self, state: str = "load", timeout: float = None) -> None:
        self.actions.append(("wait_for_load_state", state))

    async def bring_to_front(self) -> None:
        self.actions.append(("bring_to_front",))

    async def screenshot(self, path: str, full_page: bool = False) -> bytes:
        if self.screenshot_error:
            raise self.screenshot_error
        Path(path).write_bytes(b"\x89PNG fake")
        return b""

    async def title(self) -> str:
        return "CAS - Central Authentication Service"

    async def close(self) -> None:
        self.closed = True


class FakeSession:
    """Session stand-in that hands out CasPages over FakePages."""

    def __init__(self, config: HarnessConfig, page_factory: Callable[[], FakePage] = FakePage):
        self.config = config
        self.page_factory = page_factory
        self.pages: List[CasPage] = []
        self.active_page: Optional[CasPage] = None
        self.closed = False

    async def new_page(self, name: Optional[str] = None) -> CasPage:
        page = CasPage(self.page_factory(), self.config, session=self, name=name or f"page{len(self.pages) + 1}")
        self.pages.append(page)
        if self.active_page is None:
            self.active_page = page
        return page

    async def close_page(self, page: CasPage) -> None:
        self.pages.remove(page)
        if self.active_page is page:
            self.active_page = self.pages[0] if self.pages else None
        await page.page.close()


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture()
def config(tmp_path):
    """Harness configuration with short waits and a temporary artifact dir."""
    return HarnessConfig(
        cas_base_url="https://cas.example.org/cas",
        element_timeout=0.3,
        navigation_timeout=1.0,
        request_timeout=2.0,
        poll_interval=0.01,
        screenshot_dir=tmp_path / "screenshots",
        screenshot_prefix="test",
    )


@pytest.fixture()
def fake_page():
    return FakePage()


@pytest.fixture()
def session_stub():
    return SimpleNamespace(active_page=None)


@pytest.fixture()
def cas_page(fake_page, config):
    return CasPage(fake_page, config, session=None, name="login")


@pytest.fixture()
def fake_session(config):
    return FakeSession(config)
