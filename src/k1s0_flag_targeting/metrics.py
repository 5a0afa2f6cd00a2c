"""OpenTelemetry メトリクス定義"""

from __future__ import annotations

from opentelemetry import metrics

_meter = metrics.get_meter("k1s0_flag_targeting", version="0.1.0")

flag_evaluations_total = _meter.create_counter(
    name="flag_evaluations_total",
    description="Total number of feature flag evaluations",
    unit="1",
)

flag_mutations_total = _meter.create_counter(
    name="flag_mutations_total",
    description="Total number of feature flag catalog mutations",
    unit="1",
)


def reason_category(reason: str) -> str:
    """メトリクス属性用に評価理由を分類する（error: 以降のメッセージは含めない）。"""
    if reason.startswith("error"):
        return "error"
    return reason
