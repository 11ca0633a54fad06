"""
写入后验验证模块

职责：
- 通用输入框读取
- 数值字段的分组符归一化比较
- 全部字段写完后的独立最终校验
"""

from __future__ import annotations

import re
from typing import Callable, Iterator, Optional

from .field_locator import Candidate, FieldSpec, locate_candidates

LogFn = Callable[[str, str], None]

# 千分位等分组符：句点、逗号、任意空白
_GROUPING_RE = re.compile(r"[.,\s]+")


def get_input_value(locator) -> str:
    """尽力获取输入框当前值。"""
    try:
        return locator.input_value(timeout=500)
    except Exception:
        try:
            return locator.evaluate("(el) => el.value || el.textContent || ''")
        except Exception:
            return ""


def normalize_field_value(value: str | None, *, numeric: bool) -> str:
    """
    归一化待比较的字段值。

    数值字段去掉分组符（"45.000" -> "45000"）；文本字段只去掉首尾空白，
    因此 "ABC 123" 与 "ABC123" 不相等。
    """
    text = (value or "").strip()
    if numeric:
        return _GROUPING_RE.sub("", text)
    return text


def values_match(observed: str | None, target: str | None, *, numeric: bool) -> bool:
    expected = normalize_field_value(target, numeric=numeric)
    if not expected:
        return False
    return normalize_field_value(observed, numeric=numeric) == expected


def verify_fields_persisted(
    page,
    specs: list[FieldSpec],
    filled: dict[str, bool],
    *,
    settle_ms: int = 1500,
    log_fn: Optional[LogFn] = None,
    locate_fn: Optional[Callable[..., Iterator[Candidate]]] = None,
) -> dict[str, bool]:
    """
    独立于写值阶段的最终校验：等待门户脚本跑完后重新定位并读回。

    防止「写入时读回正确、随后被门户异步脚本还原」的情况。任一可见候选
    的当前值匹配即视为已保存；写值阶段就失败的字段直接判 False。
    """
    log = log_fn or (lambda msg, level="info": None)
    locate = locate_fn or locate_candidates
    try:
        page.wait_for_timeout(settle_ms)
    except Exception:
        pass

    verified: dict[str, bool] = {}
    for spec in specs:
        if not filled.get(spec.name, False):
            verified[spec.name] = False
            continue
        seen: list[str] = []
        ok = False
        for candidate in locate(spec, page, log_fn=log):
            current = get_input_value(candidate.locator)
            if values_match(current, spec.value, numeric=spec.numeric):
                ok = True
                break
            seen.append(current)
        verified[spec.name] = ok
        if ok:
            log(f"✓ 最终校验通过: {spec.name} = {spec.value}")
        else:
            log(
                f"❌ 最终校验失败: {spec.name} 期望 '{spec.value}'，实际 {seen or '未找到字段'}",
                "error",
            )
    return verified
