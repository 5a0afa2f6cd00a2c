"""FeatureFlagClient プロトコル"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from .models import EvaluationContext, EvaluationResult


@runtime_checkable
class FeatureFlagClientProtocol(Protocol):
    """フィーチャーフラグ評価クライアントプロトコル。"""

    async def evaluate(
        self, flag_key: str, context: Mapping[str, str] | EvaluationContext
    ) -> EvaluationResult: ...

    async def evaluate_simple(
        self, flag_key: str, attribute: str, value: str
    ) -> EvaluationResult: ...

    async def is_enabled(
        self, flag_key: str, context: Mapping[str, str] | EvaluationContext
    ) -> bool: ...
