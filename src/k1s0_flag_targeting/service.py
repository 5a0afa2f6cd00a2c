"""設定からストア・管理・評価を組み立てるファサード"""

from __future__ import annotations

from .admin import FlagAdmin
from .config import FeatureFlagConfig, create_store
from .evaluator import FlagEvaluator
from .logger import configure_logging
from .store import FlagStore


class FeatureFlagService:
    """FlagAdmin と FlagEvaluator を同じストアで束ねる。"""

    def __init__(self, store: FlagStore, timeout: float | None = None) -> None:
        self.store = store
        self.admin = FlagAdmin(store, timeout=timeout)
        self.evaluator = FlagEvaluator(store, timeout=timeout)

    @classmethod
    def from_config(cls, config: FeatureFlagConfig) -> FeatureFlagService:
        """設定からサービスを生成する。ロギングもここで設定する。"""
        configure_logging(config.log)
        return cls(create_store(config.store), timeout=config.store.timeout_seconds)
