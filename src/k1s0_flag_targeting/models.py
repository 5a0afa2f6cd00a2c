"""flag_targeting データモデル

Flag は集約ルートであり、Variation と Rule は Flag を通してのみ参照・永続化される。
スナップショットは不変で、変更は dataclasses.replace で新しい Flag を生成する。
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Operator(str, Enum):
    """ルール演算子。"""

    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "startswith"
    ENDS_WITH = "endswith"
    MATCHES = "matches"
    IN = "in"


class EvaluationReason:
    """評価理由コード定数。"""

    FLAG_DISABLED: str = "flag_disabled"
    RULE_MATCH: str = "rule_match"
    DEFAULT_VARIATION: str = "default_variation"
    ERROR_PREFIX: str = "error: "


@dataclass(frozen=True)
class Variation:
    """フラグバリエーション。"""

    index: int
    name: str
    value: str

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "name": self.name, "value": self.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Variation:
        return cls(index=int(data["index"]), name=str(data["name"]), value=str(data["value"]))


@dataclass(frozen=True)
class Rule:
    """ターゲティングルール。"""

    attribute: str
    operator: str
    value: str
    variation_index: int
    order: int
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "attribute": self.attribute,
            "operator": self.operator,
            "value": self.value,
            "variation_index": self.variation_index,
            "order": self.order,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Rule:
        return cls(
            id=str(data["id"]),
            attribute=str(data["attribute"]),
            operator=str(data["operator"]),
            value=str(data["value"]),
            variation_index=int(data["variation_index"]),
            order=int(data["order"]),
            created_at=_parse_datetime(data.get("created_at")),
        )


@dataclass(frozen=True)
class Flag:
    """フィーチャーフラグ集約。

    variations と rules はタプルで保持し、rules は作成順に並ぶ。
    評価時は order の昇順で安定ソートするため、同順位は作成順で解決される。
    """

    key: str
    name: str
    description: str = ""
    enabled: bool = False
    variations: tuple[Variation, ...] = ()
    rules: tuple[Rule, ...] = ()
    default_variation_index: int | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        # リストで渡されてもスナップショットはタプルで保持する
        object.__setattr__(self, "variations", tuple(self.variations))
        object.__setattr__(self, "rules", tuple(self.rules))

    def variation_by_index(self, index: int | None) -> Variation | None:
        """index が一致するバリエーションを返す。"""
        if index is None:
            return None
        for variation in self.variations:
            if variation.index == index:
                return variation
        return None

    def default_variation(self) -> Variation | None:
        """デフォルトバリエーションを返す。

        default_variation_index が解決できなければ最小 index のバリエーション、
        バリエーションが無ければ None。
        """
        variation = self.variation_by_index(self.default_variation_index)
        if variation is not None:
            return variation
        if not self.variations:
            return None
        return min(self.variations, key=lambda v: v.index)

    def sorted_rules(self) -> list[Rule]:
        """評価優先順位（order 昇順、同順位は作成順）に並べたルール。"""
        return sorted(self.rules, key=lambda r: r.order)

    def find_rule(self, rule_id: str) -> Rule | None:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def projection(self) -> Flag:
        """外部表現用に variations を index 順、rules を order 順に並べたコピー。"""
        return replace(
            self,
            variations=tuple(sorted(self.variations, key=lambda v: v.index)),
            rules=tuple(self.sorted_rules()),
        )

    def to_dict(self) -> dict[str, Any]:
        default = self.default_variation()
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "default_variation_index": self.default_variation_index,
            "default_variation": default.name if default is not None else None,
            "variations": [v.to_dict() for v in self.variations],
            "rules": [r.to_dict() for r in self.rules],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Flag:
        default_index = data.get("default_variation_index")
        return cls(
            key=str(data["key"]),
            name=str(data["name"]),
            description=str(data.get("description") or ""),
            enabled=bool(data.get("enabled", False)),
            variations=tuple(Variation.from_dict(v) for v in data.get("variations") or []),
            rules=tuple(Rule.from_dict(r) for r in data.get("rules") or []),
            default_variation_index=int(default_index) if default_index is not None else None,
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


@dataclass(frozen=True)
class VariationInput:
    """フラグ作成時に渡すバリエーション定義。"""

    name: str
    value: str


@dataclass
class EvaluationContext:
    """フラグ評価コンテキスト。"""

    user_id: str | None = None
    tenant_id: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)

    def to_mapping(self) -> dict[str, str]:
        """属性マッピングに変換する。user_id / tenant_id は設定時のみ属性として含める。"""
        mapping = dict(self.attributes)
        if self.user_id is not None:
            mapping.setdefault("user_id", self.user_id)
        if self.tenant_id is not None:
            mapping.setdefault("tenant_id", self.tenant_id)
        return mapping


@dataclass
class EvaluationResult:
    """フラグ評価結果。"""

    flag_key: str
    enabled: bool
    variation_name: str | None = None
    variation_value: str | None = None
    reason: str = ""
    matched_rule_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "flag_key": self.flag_key,
            "enabled": self.enabled,
            "variation": self.variation_name,
            "variation_value": self.variation_value,
            "reason": self.reason,
            "matched_rule_id": self.matched_rule_id,
        }


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value is None:
        return _utcnow()
    return datetime.fromisoformat(str(value))
