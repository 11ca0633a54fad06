from __future__ import annotations

from claimautopilot.config import PortalConfig
from claimautopilot.core import browser_manager
from claimautopilot.core.browser_manager import BrowserManager


class _Recorder:
    def __init__(self):
        self.launch_kwargs = None
        self.viewport = None
        self.listeners: list[str] = []
        self.closed: list[str] = []


def _fake_sync_playwright(rec: _Recorder):
    class _Page:
        def on(self, event, _handler):
            rec.listeners.append(f"page:{event}")

    class _Context:
        def new_page(self):
            return _Page()

        def on(self, event, _handler):
            rec.listeners.append(f"context:{event}")

        def close(self):
            rec.closed.append("context")

    class _Browser:
        def new_context(self, viewport):
            rec.viewport = viewport
            return _Context()

        def close(self):
            rec.closed.append("browser")

    class _Chromium:
        def launch(self, **kwargs):
            rec.launch_kwargs = kwargs
            return _Browser()

    class _Playwright:
        chromium = _Chromium()

        def stop(self):
            rec.closed.append("playwright")

    class _Starter:
        def start(self):
            return _Playwright()

    return lambda: _Starter()


def test_launch_uses_config_and_close_tears_everything_down(monkeypatch):
    rec = _Recorder()
    monkeypatch.setattr(browser_manager, "sync_playwright", _fake_sync_playwright(rec))
    config = PortalConfig(headless=False, slow_mo=100)

    session = BrowserManager(config).launch()
    session.close()

    assert rec.launch_kwargs == {"headless": False, "slow_mo": 100}
    assert rec.viewport == {"width": 1280, "height": 800}
    assert "page:pageerror" in rec.listeners
    assert "context:requestfailed" in rec.listeners
    assert rec.closed == ["context", "browser", "playwright"]


def test_zero_slow_mo_is_not_passed(monkeypatch):
    rec = _Recorder()
    monkeypatch.setattr(browser_manager, "sync_playwright", _fake_sync_playwright(rec))

    BrowserManager(PortalConfig(slow_mo=0)).launch()

    assert rec.launch_kwargs == {"headless": True}
