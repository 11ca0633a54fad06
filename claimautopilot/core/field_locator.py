"""
字段定位模块

给定语义字段描述（FieldSpec），按固定优先级在当前页面上产出候选输入框：
1. 无障碍 label 正则匹配
2. 已知稳定 id（按列出顺序）
3. input / textarea 的 name、placeholder 子串匹配（忽略大小写）
4. 文本邻近：文本匹配 label 且内含输入框的容器，取文档顺序最后一个，用其第一个输入框

只读：除短暂等待 DOM 稳定外不对页面做任何写操作。找不到时返回空序列，不抛异常。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional

from playwright.sync_api import Locator, Page

LogFn = Callable[[str, str], None]

# 文本邻近策略扫描的容器类型
CONTAINER_SELECTOR = "tr, td, div, p, .field-group, .form-group"
INPUT_SELECTOR = "input:not([type='hidden']), textarea"
# 子串匹配的可写元素类型
TEXT_ENTRY_SELECTOR = ":is(input, textarea)"


class Strategy(str, Enum):
    """定位策略，定义顺序即优先级。"""

    LABEL = "label"
    KNOWN_ID = "known_id"
    ATTRIBUTE_SUBSTRING = "attribute_substring"
    TEXT_PROXIMITY = "text_proximity"


STRATEGY_ORDER: tuple[Strategy, ...] = tuple(Strategy)


@dataclass(frozen=True)
class FieldSpec:
    """一个门户字段的语义描述 + 目标值。每次填写时构造，不可变。"""

    name: str
    value: str
    label_patterns: tuple[str, ...] = ()
    known_ids: tuple[str, ...] = ()
    attribute_substrings: tuple[str, ...] = ()
    numeric: bool = False


@dataclass
class Candidate:
    """一次填写尝试内有效的候选元素引用。"""

    locator: Locator
    strategy: Strategy
    source: str


def _noop_log(message: str, level: str = "info") -> None:
    return None


def _css_quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace("'", "\\'")


def _label_queries(spec: FieldSpec, page: Page) -> Iterator[tuple[str, Locator]]:
    for pattern in spec.label_patterns:
        yield pattern, page.get_by_label(re.compile(pattern, re.IGNORECASE))


def _known_id_queries(spec: FieldSpec, page: Page) -> Iterator[tuple[str, Locator]]:
    for ident in spec.known_ids:
        yield ident, page.locator(f"[id='{_css_quote(ident)}']")


def _attribute_queries(spec: FieldSpec, page: Page) -> Iterator[tuple[str, Locator]]:
    for substring in spec.attribute_substrings:
        quoted = _css_quote(substring)
        yield (
            f"name*={substring}",
            page.locator(f"{TEXT_ENTRY_SELECTOR}[name*='{quoted}' i]"),
        )
        yield (
            f"placeholder*={substring}",
            page.locator(f"{TEXT_ENTRY_SELECTOR}[placeholder*='{quoted}' i]"),
        )


def _text_proximity_queries(
    spec: FieldSpec, page: Page
) -> Iterator[tuple[str, Locator]]:
    for pattern in spec.label_patterns:
        containers = page.locator(CONTAINER_SELECTOR).filter(
            has_text=re.compile(pattern, re.IGNORECASE),
            has=page.locator(INPUT_SELECTOR),
        )
        # 靠前的匹配通常是只读摘要/标题，最后一个才是可编辑的行
        yield pattern, containers.last.locator(INPUT_SELECTOR).first


_STRATEGY_QUERIES: dict[
    Strategy, Callable[[FieldSpec, Page], Iterator[tuple[str, Locator]]]
] = {
    Strategy.LABEL: _label_queries,
    Strategy.KNOWN_ID: _known_id_queries,
    Strategy.ATTRIBUTE_SUBSTRING: _attribute_queries,
    Strategy.TEXT_PROXIMITY: _text_proximity_queries,
}


def _visible_candidates(
    locator: Locator, strategy: Strategy, source: str, log: LogFn
) -> Iterator[Candidate]:
    try:
        total = locator.count()
    except Exception as e:
        log(f"   ⚠️ 定位查询失败 [{strategy.value}] {source}: {e}", "warn")
        return
    # 隐藏元素不计数，逐个检查全部匹配
    for index in range(total):
        item = locator.nth(index)
        try:
            if not item.is_visible():
                continue
        except Exception:
            # 元素在检查期间被移除
            continue
        yield Candidate(locator=item, strategy=strategy, source=source)


def wait_for_dom_settle(page: Page, timeout_ms: int = 2000) -> None:
    try:
        page.wait_for_load_state("domcontentloaded", timeout=timeout_ms)
    except Exception:
        pass


def locate_candidates(
    spec: FieldSpec,
    page: Page,
    *,
    log_fn: Optional[LogFn] = None,
    settle_timeout_ms: int = 2000,
) -> Iterator[Candidate]:
    """
    惰性产出候选元素，调用方取到可用的即可停止迭代。

    Args:
        spec: 字段描述
        page: Playwright Page 对象
        log_fn: 日志回调
        settle_timeout_ms: 首次查询前等待 DOM 稳定的上限

    Yields:
        Candidate: 当前存在且可见的元素，按策略优先级排列
    """
    log = log_fn or _noop_log
    wait_for_dom_settle(page, settle_timeout_ms)
    for strategy in STRATEGY_ORDER:
        for source, locator in _STRATEGY_QUERIES[strategy](spec, page):
            yield from _visible_candidates(locator, strategy, source, log)
