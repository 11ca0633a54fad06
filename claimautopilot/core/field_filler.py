"""
字段填写编排

按定位器给出的候选顺序逐个交给写值器，首个成功即停止；候选耗尽则返回失败结果。
单字段状态机：searching → attempting → (succeeded | searching) → exhausted
"""

from __future__ import annotations

from typing import Callable, Iterator, Literal, Optional

from playwright.sync_api import Page

from .field_locator import Candidate, FieldSpec, locate_candidates
from .value_writer import FillOutcome, ValueWriter

LogFn = Callable[[str, str], None]
LocateFn = Callable[..., Iterator[Candidate]]

FillState = Literal["searching", "attempting", "succeeded", "exhausted"]
TERMINAL_STATES: frozenset[str] = frozenset({"succeeded", "exhausted"})


class FieldFiller:
    """把 Locator 和 Writer 组合成「尽力而为再放弃」的单字段填写流程。"""

    def __init__(
        self,
        page: Page,
        *,
        writer: Optional[ValueWriter] = None,
        locate_fn: Optional[LocateFn] = None,
        log_fn: Optional[LogFn] = None,
    ) -> None:
        self.page = page
        self._log = log_fn or (lambda msg, level="info": None)
        self.writer = writer or ValueWriter(log_fn=self._log)
        self._locate = locate_fn or locate_candidates
        self.state: FillState = "searching"

    def _transition(self, state: FillState, spec: FieldSpec, detail: str = "") -> None:
        self.state = state
        suffix = f" ({detail})" if detail else ""
        self._log(f"   [{spec.name}] → {state}{suffix}")

    def fill(self, spec: FieldSpec) -> FillOutcome:
        self._transition("searching", spec)
        attempts = 0
        last_observed = ""
        for candidate in self._locate(spec, self.page, log_fn=self._log):
            self._transition(
                "attempting", spec, f"{candidate.strategy.value}: {candidate.source}"
            )
            outcome = self.writer.write(
                candidate, spec.value, numeric=spec.numeric, field=spec.name
            )
            attempts += outcome.attempts
            last_observed = outcome.observed_value
            if outcome.success:
                outcome.attempts = attempts
                self._transition(
                    "succeeded",
                    spec,
                    f"{candidate.strategy.value}/{outcome.technique} = '{outcome.observed_value}'",
                )
                return outcome
            self._transition("searching", spec, "候选写入失败，尝试下一个")

        self._transition("exhausted", spec, f"尝试 {attempts} 次")
        return FillOutcome(
            field=spec.name,
            success=False,
            observed_value=last_observed,
            attempts=attempts,
        )


def fill_field(
    page: Page,
    spec: FieldSpec,
    *,
    writer: Optional[ValueWriter] = None,
    log_fn: Optional[LogFn] = None,
) -> FillOutcome:
    """便捷函数：填写单个字段"""
    return FieldFiller(page, writer=writer, log_fn=log_fn).fill(spec)
