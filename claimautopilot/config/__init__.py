"""
Configuration module for loading portal settings and credentials.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


# Package root (claimautopilot/)
PACKAGE_DIR = Path(__file__).resolve().parent.parent
SETTINGS_PATH = PACKAGE_DIR / "config.yaml"

DEFAULT_LOGIN_URL = "https://www.datgroup.com/myClaim/index.jsp"
DEFAULT_NETWORK = "DAT_IB"


_settings_cache: Optional[dict] = None


def load_settings(force_reload: bool = False) -> dict:
    """
    Load non-secret settings from config.yaml.
    Caches the result for performance.

    Returns:
        dict: settings data (empty when the file is missing or broken)
    """
    global _settings_cache

    if _settings_cache is not None and not force_reload:
        return _settings_cache

    if not SETTINGS_PATH.exists():
        print(f"⚠️ Settings file not found: {SETTINGS_PATH}")
        return {}

    try:
        with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
            _settings_cache = yaml.safe_load(f) or {}
        return _settings_cache
    except Exception as e:
        print(f"❌ Failed to load settings: {e}")
        return {}


def _env_flag_headless(raw: str | None, default: bool) -> bool:
    # HEADLESS=false 才显示浏览器窗口，其余取值一律视为无头
    if raw is None or raw == "":
        return default
    return raw.strip().lower() != "false"


@dataclass(frozen=True)
class Timeouts:
    """各步骤等待上限（毫秒）。"""

    navigation_ms: int = 30000
    network_select_ms: int = 10000
    dashboard_ms: int = 30000
    form_open_ms: int = 20000
    field_settle_ms: int = 400
    tab_settle_ms: int = 7000
    upload_settle_ms: int = 3000
    verify_settle_ms: int = 1500


@dataclass(frozen=True)
class PortalConfig:
    """
    单次会话所需的全部配置，由调用方显式传入 PortalSession。
    """

    customer_number: str = ""
    user_login: str = ""
    password: str = ""
    network: str = DEFAULT_NETWORK
    login_url: str = DEFAULT_LOGIN_URL
    headless: bool = True
    slow_mo: int = 100
    viewport_width: int = 1280
    viewport_height: int = 800
    max_photos: int = 10
    timeouts: Timeouts = field(default_factory=Timeouts)

    @classmethod
    def from_env(
        cls,
        settings: Optional[dict] = None,
        environ: Optional[dict] = None,
    ) -> "PortalConfig":
        """
        合并 config.yaml 默认值与环境变量（环境变量优先）。
        """
        settings = load_settings() if settings is None else settings
        env = os.environ if environ is None else environ

        browser_cfg = settings.get("browser", {}) or {}
        portal_cfg = settings.get("portal", {}) or {}
        photos_cfg = settings.get("photos", {}) or {}
        timeouts_cfg = settings.get("timeouts", {}) or {}
        viewport = browser_cfg.get("viewport", {}) or {}

        known = set(Timeouts.__dataclass_fields__)
        timeouts = Timeouts(
            **{k: int(v) for k, v in timeouts_cfg.items() if k in known}
        )

        return cls(
            customer_number=env.get("DAT_CUSTOMER_NUMBER", "") or "",
            user_login=env.get("DAT_USER_LOGIN", "") or "",
            password=env.get("DAT_PASSWORD", "") or "",
            network=env.get("DAT_NETWORK")
            or portal_cfg.get("network")
            or DEFAULT_NETWORK,
            login_url=env.get("DAT_LOGIN_URL")
            or portal_cfg.get("login_url")
            or DEFAULT_LOGIN_URL,
            headless=_env_flag_headless(
                env.get("HEADLESS"), bool(browser_cfg.get("headless", True))
            ),
            slow_mo=int(browser_cfg.get("slow_mo", 100)),
            viewport_width=int(viewport.get("width", 1280)),
            viewport_height=int(viewport.get("height", 800)),
            max_photos=int(photos_cfg.get("max_photos", 10)),
            timeouts=timeouts,
        )

    def missing_credentials(self) -> list[str]:
        """返回未配置的登录凭据对应的环境变量名。"""
        missing = []
        if not self.customer_number:
            missing.append("DAT_CUSTOMER_NUMBER")
        if not self.user_login:
            missing.append("DAT_USER_LOGIN")
        if not self.password:
            missing.append("DAT_PASSWORD")
        return missing
