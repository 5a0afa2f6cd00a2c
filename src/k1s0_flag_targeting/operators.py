"""ルール演算子の評価"""

from __future__ import annotations

import re
from functools import lru_cache

from .exceptions import EvaluationError
from .models import Operator


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise EvaluationError(f"invalid regular expression '{pattern}': {e}", cause=e) from e


def _in_list(rule_value: str, context_value: str) -> bool:
    return any(context_value == token.strip() for token in rule_value.split(","))


def matches(operator: str, rule_value: str, context_value: str) -> bool:
    """1 つのルール条件がコンテキスト値に一致するか判定する。

    演算子名は大文字小文字を区別しない。値の比較は大文字小文字を区別する。
    未知の演算子は常に不一致（エラーにはしない）。

    Args:
        operator: 演算子名 (equals / contains / startswith / endswith / matches / in)
        rule_value: ルールのオペランド
        context_value: コンテキストの属性値

    Raises:
        EvaluationError: matches 演算子の正規表現が不正な場合
    """
    try:
        op = Operator(operator.lower())
    except ValueError:
        return False

    if op is Operator.EQUALS:
        return context_value == rule_value
    if op is Operator.CONTAINS:
        return rule_value in context_value
    if op is Operator.STARTS_WITH:
        return context_value.startswith(rule_value)
    if op is Operator.ENDS_WITH:
        return context_value.endswith(rule_value)
    if op is Operator.MATCHES:
        return _compile(rule_value).fullmatch(context_value) is not None
    return _in_list(rule_value, context_value)
