"""
门户会话：单条估价记录的完整录入流程。

流程：
1. 登录（可选的网络类型选择）
2. 等待首页，新建订单
3. 「Apertura」页按固定 id 填写身份字段
4. 下载并批量上传照片（可选）
5. 切换到「Vehicle selection」页，逐级升级填写里程与车牌
6. 独立最终校验，决定回写状态

浏览器在任何情况下都会关闭。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from playwright.sync_api import Page, TimeoutError as PlaywrightTimeoutError

from ..config import PortalConfig
from ..db.database import SessionLocal
from ..models.automation_log import AutomationLog
from ..models.valuation import Valuation, ValuationStatus
from .browser_manager import BrowserManager
from .field_filler import FieldFiller
from .field_locator import FieldSpec
from .field_specs import IDENTITY_FIELD_IDS, mileage_spec, registration_spec
from .photos import cleanup_photos, download_photos, make_photo_dir
from .value_writer import FillOutcome, ValueWriter
from .verifier import verify_fields_persisted

DASHBOARD_MARKER = ".button-openClaimButton"
CONTRACT_TAB = "li[aria-controls='tab-contractOpening']"
VEHICLE_TAB = (
    "li[aria-controls='tab-vehicleSelection'] a, li:has-text('Vehicle selection') a"
)
PHOTO_FRAME_TITLE = "Anonymized photos"


@dataclass
class SessionResult:
    status: ValuationStatus
    field_outcomes: dict[str, FillOutcome] = field(default_factory=dict)
    verified: dict[str, bool] = field(default_factory=dict)
    photos_uploaded: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == ValuationStatus.SUCCESS


def decide_session_status(
    outcomes: dict[str, FillOutcome], verified: dict[str, bool]
) -> ValuationStatus:
    """
    字段写入失败（从未写进去）优先于最终校验不一致（写进去后被还原）。
    """
    if any(not o.success for o in outcomes.values()):
        return ValuationStatus.FIELD_NOT_FILLED
    if any(not verified.get(name, False) for name in outcomes):
        return ValuationStatus.NOT_PERSISTED
    return ValuationStatus.SUCCESS


class PortalSession:
    """
    驱动 DAT myClaim 门户录入一条记录。每次 run() 独占一个浏览器。
    """

    def __init__(self, config: PortalConfig) -> None:
        self.config = config
        self.timeouts = config.timeouts
        self._valuation_id: Optional[int] = None

    def run(self, valuation: Valuation) -> SessionResult:
        self._valuation_id = valuation.id
        self._log("=" * 50)
        self._log(f"🔄 开始处理估价记录 {valuation.id}")
        self._log(f"   车牌: {valuation.registration_number or '无'}")
        self._log(f"   里程: {valuation.mileage if valuation.mileage is not None else '无'}")
        self._log("=" * 50)

        missing = self.config.missing_credentials()
        if missing:
            reason = f"缺少门户凭据: {', '.join(missing)}"
            self._log(f"❌ {reason}", "error")
            return SessionResult(status=ValuationStatus.FAILED, error=reason)

        browser_session = None
        photos_uploaded = 0
        try:
            manager = BrowserManager(
                self.config, log_fn=lambda msg, level="info": self._log(msg, level)
            )
            browser_session = manager.launch()
            page = browser_session.page

            self._log("\n--- 步骤 1: 登录 ---")
            self._login(page)

            self._log("\n--- 步骤 2: 新建订单 ---")
            self._open_claim_form(page)

            self._log("\n--- 步骤 3: 填写 Apertura ---")
            self._fill_identity_fields(page, valuation)

            self._log("\n--- 步骤 4: 照片 ---")
            photos_uploaded = self._transfer_photos(page, valuation)

            self._log("\n--- 步骤 5: 车辆信息 ---")
            self._open_vehicle_tab(page)
            specs = self._vehicle_field_specs(valuation)
            outcomes = self._fill_vehicle_fields(page, specs)

            self._log("\n--- 步骤 6: 最终校验 ---")
            verified = verify_fields_persisted(
                page,
                specs,
                {name: o.success for name, o in outcomes.items()},
                settle_ms=self.timeouts.verify_settle_ms,
                log_fn=lambda msg, level="info": self._log(msg, level),
            )

            status = decide_session_status(outcomes, verified)
            level = "info" if status == ValuationStatus.SUCCESS else "warn"
            self._log(f"\n--- 结果: {status.value} ---", level)
            return SessionResult(
                status=status,
                field_outcomes=outcomes,
                verified=verified,
                photos_uploaded=photos_uploaded,
            )

        except PlaywrightTimeoutError as e:
            self._log(f"❌ 等待页面元素超时: {e}", "error")
            return SessionResult(
                status=ValuationStatus.FAILED,
                photos_uploaded=photos_uploaded,
                error=f"timeout: {str(e)[:300]}",
            )
        except Exception as e:
            self._log(f"❌ 录入过程异常: {e}", "error")
            return SessionResult(
                status=ValuationStatus.FAILED,
                photos_uploaded=photos_uploaded,
                error=str(e)[:300],
            )
        finally:
            if browser_session:
                try:
                    browser_session.close()
                    self._log("🏁 浏览器已关闭")
                except Exception as e:
                    self._log(f"⚠ 浏览器关闭异常: {e}", "warn")

    def _login(self, page: Page) -> None:
        cfg = self.config
        page.goto(
            cfg.login_url, wait_until="networkidle", timeout=self.timeouts.navigation_ms
        )
        page.fill("#login-customerNumber", cfg.customer_number)
        page.fill("#login-userLogin", cfg.user_login)
        page.fill("#login-password", cfg.password)
        page.click("#login-submit")

        # 部分账号登录后还要选择网络类型
        try:
            page.wait_for_selector(
                "#login-networkType", timeout=self.timeouts.network_select_ms
            )
        except PlaywrightTimeoutError:
            self._log("ℹ 无网络类型选择步骤")
            return
        page.select_option("#login-networkType", cfg.network)
        page.click("#login-submit")
        self._log(f"✓ 已选择网络类型: {cfg.network}")

    def _open_claim_form(self, page: Page) -> None:
        self._log("⏳ 等待首页...")
        page.wait_for_selector(DASHBOARD_MARKER, timeout=self.timeouts.dashboard_ms)
        page.click(DASHBOARD_MARKER)
        page.wait_for_selector(CONTRACT_TAB, timeout=self.timeouts.form_open_ms)
        self._log("✓ 订单表单已打开")

    def _fill_identity_fields(self, page: Page, valuation: Valuation) -> None:
        for attr, selector in IDENTITY_FIELD_IDS.items():
            page.fill(selector, getattr(valuation, attr) or "")
        self._log("✓ 身份字段已填写")

    def _transfer_photos(self, page: Page, valuation: Valuation) -> int:
        urls = valuation.photo_urls()
        if not urls:
            self._log("ℹ 无照片")
            return 0

        self._log(f"📸 处理 {len(urls)} 张照片（最多 {self.config.max_photos} 张）")
        photo_dir = make_photo_dir(valuation.id)
        files = []
        try:
            files = download_photos(
                urls,
                valuation.id,
                photo_dir,
                max_photos=self.config.max_photos,
                log_fn=lambda msg, level="info": self._log(msg, level),
            )
            if not files:
                self._log("⚠ 没有成功下载的照片，跳过上传", "warn")
                return 0
            try:
                header = page.locator("h2.frameHeader").filter(
                    has_text=PHOTO_FRAME_TITLE
                )
                frame = page.locator(".document.layout-frame").filter(has=header)
                header.scroll_into_view_if_needed(timeout=self.timeouts.form_open_ms)
                frame.locator(".uploadZone-fileInput").set_input_files(
                    [str(p) for p in files]
                )
                page.wait_for_timeout(self.timeouts.upload_settle_ms)
            except Exception as e:
                self._log(f"⚠ 照片上传失败: {e}", "warn")
                return 0
            self._log(f"✓ 已上传 {len(files)} 张照片")
            return len(files)
        finally:
            cleanup_photos(files, photo_dir)

    def _open_vehicle_tab(self, page: Page) -> None:
        page.locator(VEHICLE_TAB).first.click(
            force=True, timeout=self.timeouts.form_open_ms
        )
        # 门户切页后异步渲染表单
        page.wait_for_timeout(self.timeouts.tab_settle_ms)

    def _vehicle_field_specs(self, valuation: Valuation) -> list[FieldSpec]:
        specs: list[FieldSpec] = []
        if valuation.mileage is not None:
            specs.append(mileage_spec(valuation.mileage))
        if (valuation.registration_number or "").strip():
            specs.append(registration_spec(valuation.registration_number))
        return specs

    def _fill_vehicle_fields(
        self, page: Page, specs: list[FieldSpec]
    ) -> dict[str, FillOutcome]:
        log_fn = lambda msg, level="info": self._log(msg, level)  # noqa: E731
        filler = FieldFiller(
            page,
            writer=ValueWriter(settle_ms=self.timeouts.field_settle_ms, log_fn=log_fn),
            log_fn=log_fn,
        )
        outcomes: dict[str, FillOutcome] = {}
        for spec in specs:
            outcome = filler.fill(spec)
            outcomes[spec.name] = outcome
            if outcome.success:
                self._log(
                    f"✓ {spec.name} 已填写 "
                    f"({outcome.strategy.value}/{outcome.technique}: '{outcome.observed_value}')"
                )
            else:
                self._log(f"❌ {spec.name} 无法填写，已跳过", "error")
        return outcomes

    def _log(self, message: str, level: str = "info") -> None:
        _log(self._valuation_id, message, level)


def _log(valuation_id: Optional[int], message: str, level: str = "info") -> None:
    """写入日志"""
    if valuation_id is not None:
        with SessionLocal() as session:
            session.add(
                AutomationLog(valuation_id=valuation_id, level=level, message=message)
            )
            session.commit()
    print(f"[valuation={valuation_id}] [{level.upper()}] {message}")
