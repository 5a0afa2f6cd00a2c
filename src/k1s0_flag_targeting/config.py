"""設定型定義（pydantic BaseModel）と読み込み"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigError
from .file_store import FileFlagStore
from .memory import InMemoryFlagStore
from .store import FlagStore


class StoreSection(BaseModel):
    """ストレージ設定。"""

    backend: Literal["memory", "file"] = "memory"
    path: str = "flags.yaml"
    timeout_seconds: float | None = Field(default=5.0, gt=0)


class LogSection(BaseModel):
    """ログ設定。"""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class FeatureFlagConfig(BaseModel):
    """flag_targeting 設定全体。"""

    store: StoreSection = Field(default_factory=StoreSection)
    log: LogSection = Field(default_factory=LogSection)


def load_config(path: Path) -> FeatureFlagConfig:
    """YAML 設定ファイルを読み込んで FeatureFlagConfig を返す。"""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {path}", cause=e) from e
    try:
        data: dict[str, Any] = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML: {path}", cause=e) from e
    try:
        return FeatureFlagConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(f"Config validation failed: {e}", cause=e) from e


def create_store(section: StoreSection) -> FlagStore:
    """設定に従ってストアを生成する。"""
    if section.backend == "file":
        return FileFlagStore(section.path)
    return InMemoryFlagStore()
