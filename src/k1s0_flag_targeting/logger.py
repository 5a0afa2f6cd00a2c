"""structlog ベースのロガー設定"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from .config import LogSection

LIBRARY_NAME = "k1s0_flag_targeting"


def _add_library(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """全イベントにライブラリ名を付与する。"""
    event_dict.setdefault("library", LIBRARY_NAME)
    return event_dict


def _renderer(format: str) -> list[structlog.types.Processor]:
    if format == "json":
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer()]


def configure_logging(
    section: LogSection | None = None, **context: Any
) -> structlog.stdlib.BoundLogger:
    """LogSection に従って structlog を設定し、ライブラリ用のロガーを返す。

    Args:
        section: ログ設定。None の場合はデフォルト (INFO / json)
        context: 全ログに付与する追加フィールド（例: service="checkout-api"）

    Returns:
        structlog.stdlib.BoundLogger（context は contextvars 経由で全ロガーに付与される）
    """
    section = section or LogSection()
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, section.level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            _add_library,
            structlog.processors.TimeStamper(fmt="iso"),
            *_renderer(section.format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if context:
        structlog.contextvars.bind_contextvars(**context)
    return structlog.stdlib.get_logger(LIBRARY_NAME)
