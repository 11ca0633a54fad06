"""
浏览器管理模块：统一管理 Playwright 浏览器启动、上下文与事件日志。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from playwright.sync_api import Browser, BrowserContext, Page, sync_playwright

from ..config import PortalConfig

LogFn = Callable[[str, str], None]


@dataclass
class BrowserSession:
    playwright: Any
    browser: Browser
    context: BrowserContext
    page: Page

    def close(self) -> None:
        try:
            self.context.close()
            self.browser.close()
        finally:
            try:
                self.playwright.stop()
            except Exception:
                pass


class BrowserManager:
    """
    管理浏览器生命周期与配置，每条记录一个全新的非持久化浏览器。
    """

    def __init__(self, config: PortalConfig, log_fn: Optional[LogFn] = None) -> None:
        self.config = config
        self._log = log_fn or (lambda msg, level="info": None)

    def launch(self) -> BrowserSession:
        """启动浏览器并返回会话。"""
        launch_args = {
            "headless": self.config.headless,
            "slow_mo": self.config.slow_mo if self.config.slow_mo > 0 else None,
        }
        # 清理 None 参数
        launch_args = {k: v for k, v in launch_args.items() if v is not None}

        playwright = sync_playwright().start()
        try:
            browser = playwright.chromium.launch(**launch_args)
            context = browser.new_context(
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                }
            )
            page = context.new_page()
        except Exception:
            playwright.stop()
            raise

        self._attach_basic_listeners(page)
        self._attach_context_listeners(context)
        self._log(f"✓ 浏览器已启动 (headless={self.config.headless})")

        return BrowserSession(
            playwright=playwright,
            browser=browser,
            context=context,
            page=page,
        )

    def _attach_basic_listeners(self, page: Page) -> None:
        """采集页面基础错误信息，写入日志便于排查。"""
        try:
            page.on(
                "console",
                lambda msg: self._log(f"[console:{msg.type}] {msg.text}", "warn")
                if msg.type == "error"
                else None,
            )
            page.on(
                "pageerror",
                lambda exc: self._log(f"[pageerror] {exc}", "error"),
            )
        except Exception:
            pass

    def _attach_context_listeners(self, context: BrowserContext) -> None:
        try:
            context.on(
                "requestfailed",
                lambda req: self._log(
                    f"[requestfailed] {req.method} {req.url}", "warn"
                ),
            )
        except Exception:
            pass
