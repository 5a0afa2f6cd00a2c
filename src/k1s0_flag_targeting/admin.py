"""フラグカタログの管理操作"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone

import structlog

from .exceptions import FeatureFlagErrorCodes, NotFoundError, ValidationError
from .metrics import flag_mutations_total
from .models import Flag, Rule, Variation, VariationInput
from .store import FlagStore, call_with_timeout

logger = structlog.stdlib.get_logger(__name__)


def _require(value: str, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must not be blank")


def _check_variation_index(index: int, variation_count: int) -> None:
    if not isinstance(index, int) or isinstance(index, bool):
        raise ValidationError(f"variation index must be an integer: {index!r}")
    if index < 0 or index >= variation_count:
        raise ValidationError(f"invalid variation index: {index}")


class FlagAdmin:
    """フラグの作成・切り替え・削除とルール管理。

    各操作はストアへの 1 回のアトミック呼び出しで完結し、
    エラーは呼び出し元へそのまま送出する。リトライは行わない。
    """

    def __init__(self, store: FlagStore, timeout: float | None = None) -> None:
        self._store = store
        self._timeout = timeout

    async def list_flags(self) -> list[Flag]:
        """全フラグをキー順で返す。"""
        flags = await call_with_timeout(self._store.list_all(), self._timeout)
        return [flag.projection() for flag in flags]

    async def get_flag(self, flag_key: str) -> Flag:
        flag = await call_with_timeout(self._store.get(flag_key), self._timeout)
        if flag is None:
            raise NotFoundError(f"feature flag not found: {flag_key}")
        return flag.projection()

    async def create_flag(
        self,
        key: str,
        name: str,
        description: str = "",
        enabled: bool = False,
        variations: Sequence[VariationInput] = (),
        *,
        default_variation_index: int | None = None,
        actor: str | None = None,
    ) -> Flag:
        """フラグをバリエーションごと作成する。

        バリエーションの index は渡された順に 0..n-1 を割り当てる。

        Raises:
            ConflictError: キーが既に存在する場合
            ValidationError: key / name が空、または default_variation_index が範囲外の場合
        """
        _require(key, "key")
        _require(name, "name")
        if default_variation_index is not None:
            _check_variation_index(default_variation_index, len(variations))

        now = datetime.now(timezone.utc)
        flag = Flag(
            key=key,
            name=name,
            description=description or "",
            enabled=enabled,
            variations=tuple(
                Variation(index=i, name=v.name, value=v.value) for i, v in enumerate(variations)
            ),
            default_variation_index=default_variation_index,
            created_at=now,
            updated_at=now,
        )
        await self._store.insert(flag, timeout=self._timeout)

        flag_mutations_total.add(1, {"operation": "create_flag"})
        logger.info("feature flag created", flag_key=key, variations=len(flag.variations), actor=actor)
        return flag.projection()

    async def create_rule(
        self,
        flag_key: str,
        attribute: str,
        operator: str,
        value: str,
        variation_index: int,
        *,
        actor: str | None = None,
    ) -> Rule:
        """ルールをフラグの末尾に追加する。order は現在のルール数。

        Raises:
            NotFoundError: フラグが存在しない場合
            ValidationError: variation_index が範囲外、または attribute / operator が空の場合
        """
        created: list[Rule] = []

        def append_rule(flag: Flag) -> Flag:
            _require(attribute, "attribute")
            _require(operator, "operator")
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"rule value must be a string: {value!r}")
            _check_variation_index(variation_index, len(flag.variations))
            rule = Rule(
                attribute=attribute,
                operator=operator,
                value=value or "",
                variation_index=variation_index,
                order=len(flag.rules),
            )
            created.append(rule)
            return replace(
                flag,
                rules=flag.rules + (rule,),
                updated_at=datetime.now(timezone.utc),
            )

        await self._store.update(flag_key, append_rule, timeout=self._timeout)

        rule = created[0]
        flag_mutations_total.add(1, {"operation": "create_rule"})
        logger.info(
            "rule created",
            flag_key=flag_key,
            rule_id=rule.id,
            order=rule.order,
            actor=actor,
        )
        return rule

    async def toggle_flag(self, flag_key: str, enabled: bool, *, actor: str | None = None) -> None:
        def set_enabled(flag: Flag) -> Flag:
            if flag.enabled == enabled:
                return flag
            return replace(flag, enabled=enabled, updated_at=datetime.now(timezone.utc))

        await self._store.update(flag_key, set_enabled, timeout=self._timeout)

        flag_mutations_total.add(1, {"operation": "toggle_flag"})
        logger.info("feature flag toggled", flag_key=flag_key, enabled=enabled, actor=actor)

    async def delete_rule(self, flag_key: str, rule_id: str, *, actor: str | None = None) -> None:
        """ルールを削除する。残りのルールの order は振り直さない。

        Raises:
            NotFoundError: フラグが存在しない、またはルールがそのフラグに属さない場合
        """

        def remove_rule(flag: Flag) -> Flag:
            if flag.find_rule(rule_id) is None:
                raise NotFoundError(
                    f"rule {rule_id} not found in feature flag {flag_key}",
                    code=FeatureFlagErrorCodes.RULE_NOT_FOUND,
                )
            return replace(
                flag,
                rules=tuple(r for r in flag.rules if r.id != rule_id),
                updated_at=datetime.now(timezone.utc),
            )

        await self._store.update(flag_key, remove_rule, timeout=self._timeout)

        flag_mutations_total.add(1, {"operation": "delete_rule"})
        logger.info("rule deleted", flag_key=flag_key, rule_id=rule_id, actor=actor)

    async def delete_flag(self, flag_key: str, *, actor: str | None = None) -> None:
        """フラグを削除する。バリエーションとルールも同時に削除される。"""
        deleted = await self._store.delete(flag_key, timeout=self._timeout)
        if not deleted:
            raise NotFoundError(f"feature flag not found: {flag_key}")

        flag_mutations_total.add(1, {"operation": "delete_flag"})
        logger.info("feature flag deleted", flag_key=flag_key, actor=actor)
