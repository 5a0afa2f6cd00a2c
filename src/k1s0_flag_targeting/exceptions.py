"""flag_targeting ライブラリの例外型定義"""

from __future__ import annotations


class FeatureFlagError(Exception):
    """flag_targeting ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class FeatureFlagErrorCodes:
    """エラーコード定数。"""

    FLAG_NOT_FOUND: str = "FLAG_NOT_FOUND"
    RULE_NOT_FOUND: str = "RULE_NOT_FOUND"
    FLAG_CONFLICT: str = "FLAG_CONFLICT"
    VALIDATION: str = "VALIDATION_ERROR"
    EVALUATION: str = "EVALUATION_ERROR"
    STORE: str = "STORE_ERROR"
    STORE_TIMEOUT: str = "STORE_TIMEOUT"
    CONFIG: str = "CONFIG_ERROR"


class NotFoundError(FeatureFlagError):
    """フラグまたはルールが存在しない場合のエラー。"""

    def __init__(self, message: str, code: str = FeatureFlagErrorCodes.FLAG_NOT_FOUND) -> None:
        super().__init__(code, message)


class ConflictError(FeatureFlagError):
    """フラグキーが既に存在する場合のエラー。"""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            FeatureFlagErrorCodes.FLAG_CONFLICT,
            f"feature flag with key '{key}' already exists",
        )


class ValidationError(FeatureFlagError):
    """入力値が不正な場合のエラー。"""

    def __init__(self, message: str) -> None:
        super().__init__(FeatureFlagErrorCodes.VALIDATION, message)


class EvaluationError(FeatureFlagError):
    """評価時のエラー（不正な正規表現など）。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(FeatureFlagErrorCodes.EVALUATION, message, cause)


class StoreError(FeatureFlagError):
    """ストレージ層の I/O 失敗またはタイムアウト。"""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        code: str = FeatureFlagErrorCodes.STORE,
    ) -> None:
        super().__init__(code, message, cause)


class ConfigError(FeatureFlagError):
    """設定ファイルの読み込み・検証エラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(FeatureFlagErrorCodes.CONFIG, message, cause)
