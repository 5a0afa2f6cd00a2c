"""設定読み込みとロガーのユニットテスト"""

from pathlib import Path

import pytest
import structlog
from k1s0_flag_targeting import (
    ConfigError,
    FeatureFlagConfig,
    FeatureFlagErrorCodes,
    FeatureFlagService,
    FileFlagStore,
    InMemoryFlagStore,
    LogSection,
    StoreSection,
    configure_logging,
    create_store,
    load_config,
)
from k1s0_flag_targeting.logger import LIBRARY_NAME, _add_library


def write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


def test_load_config_with_values(tmp_path: Path) -> None:
    """YAML から設定を読み込む。"""
    path = write_config(
        tmp_path,
        "store:\n  backend: file\n  path: /var/lib/flags.yaml\n  timeout_seconds: 2.5\nlog:\n  level: DEBUG\n  format: text\n",
    )
    config = load_config(path)
    assert config.store.backend == "file"
    assert config.store.path == "/var/lib/flags.yaml"
    assert config.store.timeout_seconds == 2.5
    assert config.log.level == "DEBUG"
    assert config.log.format == "text"


def test_load_config_defaults_for_empty_file(tmp_path: Path) -> None:
    """空ファイルはデフォルト設定。"""
    config = load_config(write_config(tmp_path, ""))
    assert config.store.backend == "memory"
    assert config.store.timeout_seconds == 5.0
    assert config.log.format == "json"


def test_load_config_missing_file(tmp_path: Path) -> None:
    """存在しないファイルは ConfigError。"""
    with pytest.raises(ConfigError) as exc_info:
        load_config(tmp_path / "missing.yaml")
    assert exc_info.value.code == FeatureFlagErrorCodes.CONFIG


def test_load_config_invalid_yaml(tmp_path: Path) -> None:
    """不正な YAML は ConfigError。"""
    with pytest.raises(ConfigError):
        load_config(write_config(tmp_path, "store: [unclosed"))


def test_load_config_validation_failure(tmp_path: Path) -> None:
    """値の検証に失敗すると ConfigError。"""
    with pytest.raises(ConfigError) as exc_info:
        load_config(write_config(tmp_path, "store:\n  backend: redis\n"))
    assert "validation" in str(exc_info.value)
    with pytest.raises(ConfigError):
        load_config(write_config(tmp_path, "store:\n  timeout_seconds: 0\n"))


def test_create_store_by_backend(tmp_path: Path) -> None:
    """backend に応じたストアを生成する。"""
    assert isinstance(create_store(StoreSection()), InMemoryFlagStore)
    store = create_store(StoreSection(backend="file", path=str(tmp_path / "f.yaml")))
    assert isinstance(store, FileFlagStore)
    assert store.path == tmp_path / "f.yaml"


async def test_service_from_config() -> None:
    """設定からサービスを組み立てて利用できる。"""
    service = FeatureFlagService.from_config(FeatureFlagConfig())
    await service.admin.create_flag("feature-a", "Feature A", enabled=True)
    assert await service.evaluator.is_enabled("feature-a", {}) is True


def test_configure_logging_json_format() -> None:
    """JSON フォーマットのロガーが作成できること。"""
    logger = configure_logging(LogSection(level="INFO", format="json"))
    assert logger is not None


def test_configure_logging_text_format() -> None:
    """テキストフォーマットのロガーが作成できること。"""
    logger = configure_logging(LogSection(level="DEBUG", format="text"))
    assert logger.bind(flag_key="feature-a") is not None


def test_configure_logging_binds_context() -> None:
    """context は contextvars として全ログに付与される。"""
    try:
        configure_logging(service="checkout-api")
        assert structlog.contextvars.get_contextvars()["service"] == "checkout-api"
    finally:
        structlog.contextvars.clear_contextvars()


def test_library_name_added_to_events() -> None:
    """全イベントにライブラリ名が付与される。"""
    event = _add_library(None, "info", {"event": "flag evaluated"})
    assert event["library"] == LIBRARY_NAME
