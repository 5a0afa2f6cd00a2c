"""フラグ評価エンジン"""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from .exceptions import FeatureFlagError, NotFoundError
from .metrics import flag_evaluations_total, reason_category
from .models import EvaluationContext, EvaluationReason, EvaluationResult, Flag, Variation
from .operators import matches
from .store import FlagStore, call_with_timeout

logger = structlog.stdlib.get_logger(__name__)

ContextInput = Mapping[str, str] | EvaluationContext


def _result(
    flag: Flag,
    enabled: bool,
    reason: str,
    variation: Variation | None,
    matched_rule_id: str | None = None,
) -> EvaluationResult:
    return EvaluationResult(
        flag_key=flag.key,
        enabled=enabled,
        variation_name=variation.name if variation is not None else None,
        variation_value=variation.value if variation is not None else None,
        reason=reason,
        matched_rule_id=matched_rule_id,
    )


def decide(flag: Flag, context: Mapping[str, str]) -> EvaluationResult:
    """フラグのスナップショットとコンテキストから評価結果を決定する。

    1. フラグ無効なら flag_disabled とデフォルトバリエーション
    2. ルールを order 昇順に走査し、最初に一致したルールのバリエーション
    3. 一致なしなら default_variation とデフォルトバリエーション

    参照先バリエーションが存在しないルールは読み飛ばす。

    Raises:
        EvaluationError: matches 演算子の正規表現が不正な場合
    """
    if not flag.enabled:
        return _result(flag, False, EvaluationReason.FLAG_DISABLED, flag.default_variation())

    for rule in flag.sorted_rules():
        context_value = context.get(rule.attribute)
        if context_value is None:
            continue
        if not matches(rule.operator, rule.value, context_value):
            continue
        variation = flag.variation_by_index(rule.variation_index)
        if variation is None:
            logger.warning(
                "rule references missing variation",
                flag_key=flag.key,
                rule_id=rule.id,
                variation_index=rule.variation_index,
            )
            continue
        return _result(flag, True, EvaluationReason.RULE_MATCH, variation, rule.id)

    return _result(flag, True, EvaluationReason.DEFAULT_VARIATION, flag.default_variation())


def _as_mapping(context: ContextInput) -> Mapping[str, str]:
    if isinstance(context, EvaluationContext):
        return context.to_mapping()
    return context


class FlagEvaluator:
    """ストアからフラグを読み込んで評価する。

    evaluate / evaluate_simple は例外を送出せず、内部エラーは
    enabled=False, reason="error: <message>" の結果に縮退する。
    """

    def __init__(self, store: FlagStore, timeout: float | None = None) -> None:
        self._store = store
        self._timeout = timeout

    async def evaluate(self, flag_key: str, context: ContextInput) -> EvaluationResult:
        """コンテキスト全体でフラグを評価する。"""
        try:
            flag = await self._load(flag_key)
            result = decide(flag, _as_mapping(context))
        except Exception as e:
            result = self._degraded(flag_key, e)
        flag_evaluations_total.add(1, {"flag_key": flag_key, "reason": reason_category(result.reason)})
        logger.debug(
            "flag evaluated",
            flag_key=flag_key,
            enabled=result.enabled,
            variation=result.variation_name,
            reason=result.reason,
        )
        return result

    async def evaluate_simple(self, flag_key: str, attribute: str, value: str) -> EvaluationResult:
        """単一属性でフラグを評価する。evaluate と同じ order 昇順の優先順位を用いる。"""
        return await self.evaluate(flag_key, {attribute: value})

    async def is_enabled(self, flag_key: str, context: ContextInput) -> bool:
        result = await self.evaluate(flag_key, context)
        return result.enabled

    async def is_targeted(self, flag_key: str, attribute: str, value: str) -> bool:
        """フラグが有効で、attribute に対するルールが一致した場合のみ True。"""
        result = await self.evaluate_simple(flag_key, attribute, value)
        return result.enabled and result.reason == EvaluationReason.RULE_MATCH

    async def _load(self, flag_key: str) -> Flag:
        flag = await call_with_timeout(self._store.get(flag_key), self._timeout)
        if flag is None:
            raise NotFoundError(f"feature flag not found: {flag_key}")
        return flag

    @staticmethod
    def _degraded(flag_key: str, error: Exception) -> EvaluationResult:
        message = error.message if isinstance(error, FeatureFlagError) else str(error)
        logger.warning("flag evaluation failed", flag_key=flag_key, error=str(error))
        return EvaluationResult(
            flag_key=flag_key,
            enabled=False,
            reason=f"{EvaluationReason.ERROR_PREFIX}{message}",
        )
