"""
字段写值模块

对单个候选元素按固定顺序逐级升级写入手段，每一步写完都读回比对，
一旦读回值（归一化后）与目标一致立即停止：
1. type   : 滚动 → 聚焦 → 清空 → 逐字输入 → 失焦（很多校验框架只在 blur 时提交）
2. script : 原生 setter 直接赋值，再依次派发 input/change/blur/keydown/keyup/keypress
3. fill   : Playwright 原生 fill() + 失焦

全部失败时返回带最后读回值的失败结果，不抛异常，由上层决定换候选还是放弃。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .field_locator import Candidate, Strategy
from .verifier import get_input_value, normalize_field_value, values_match

LogFn = Callable[[str, str], None]

TECHNIQUE_ORDER: tuple[str, ...] = ("type", "script", "fill")

_SET_VALUE_WITH_EVENTS_JS = """
(el, value) => {
  const proto = el instanceof HTMLTextAreaElement
    ? HTMLTextAreaElement.prototype
    : HTMLInputElement.prototype;
  const setter = Object.getOwnPropertyDescriptor(proto, 'value')?.set;
  if (setter) setter.call(el, value);
  else el.value = value;
  el.setAttribute('value', value);
  el.dispatchEvent(new Event('input', { bubbles: true }));
  el.dispatchEvent(new Event('change', { bubbles: true }));
  el.dispatchEvent(new Event('blur', { bubbles: true }));
  for (const type of ['keydown', 'keyup', 'keypress']) {
    el.dispatchEvent(new KeyboardEvent(type, { bubbles: true }));
  }
}
"""


@dataclass
class FillOutcome:
    field: str
    success: bool
    strategy: Optional[Strategy] = None
    technique: Optional[str] = None
    observed_value: str = ""
    normalized_match: bool = False
    attempts: int = 0

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "success": self.success,
            "strategy": self.strategy.value if self.strategy else None,
            "technique": self.technique,
            "observed_value": self.observed_value,
            "normalized_match": self.normalized_match,
            "attempts": self.attempts,
        }


class ValueWriter:
    """
    逐级升级的写值器。同一元素不可并发调用；每种手段写前都会清空，重试幂等。
    """

    def __init__(
        self,
        *,
        settle_ms: int = 400,
        type_delay_ms: int = 50,
        action_timeout_ms: int = 2000,
        log_fn: Optional[LogFn] = None,
    ) -> None:
        self.settle_ms = settle_ms
        self.type_delay_ms = type_delay_ms
        self.action_timeout_ms = action_timeout_ms
        self._log = log_fn or (lambda msg, level="info": None)
        self._techniques: dict[str, Callable] = {
            "type": self._write_by_typing,
            "script": self._write_by_script,
            "fill": self._write_by_fill,
        }

    def write(
        self,
        candidate: Candidate,
        value: str,
        *,
        numeric: bool = False,
        field: str = "",
    ) -> FillOutcome:
        locator = candidate.locator
        outcome = FillOutcome(field=field, success=False, strategy=candidate.strategy)
        for technique in TECHNIQUE_ORDER:
            outcome.attempts += 1
            try:
                self._techniques[technique](locator, value)
            except Exception as e:
                self._log(f"   ⚠️ [{field}] {technique} 写入异常: {e}", "warn")
            self._settle(locator)
            observed = get_input_value(locator)
            outcome.observed_value = observed
            if values_match(observed, value, numeric=numeric):
                outcome.success = True
                outcome.technique = technique
                outcome.normalized_match = normalize_field_value(
                    observed, numeric=False
                ) != normalize_field_value(value, numeric=False)
                return outcome
            self._log(
                f"   ↪ [{field}] {technique} 读回不一致: '{observed}' != '{value}'",
                "warn",
            )
        outcome.strategy = None
        return outcome

    def _settle(self, locator) -> None:
        try:
            locator.page.wait_for_timeout(self.settle_ms)
        except Exception:
            pass

    def _write_by_typing(self, locator, value: str) -> None:
        timeout = self.action_timeout_ms
        locator.scroll_into_view_if_needed(timeout=timeout)
        locator.focus(timeout=timeout)
        locator.fill("", timeout=timeout)
        locator.press_sequentially(value, delay=self.type_delay_ms, timeout=timeout)
        locator.blur(timeout=timeout)

    def _write_by_script(self, locator, value: str) -> None:
        locator.evaluate(_SET_VALUE_WITH_EVENTS_JS, value)

    def _write_by_fill(self, locator, value: str) -> None:
        timeout = self.action_timeout_ms
        locator.fill(value, timeout=timeout)
        locator.blur(timeout=timeout)
