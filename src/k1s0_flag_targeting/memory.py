"""InMemoryFlagStore 実装"""

from __future__ import annotations

import asyncio

from .exceptions import ConflictError, NotFoundError
from .models import Flag
from .store import FlagMutation, FlagStore, write_lock


class InMemoryFlagStore(FlagStore):
    """テスト用インメモリフラグストア。

    フラグは不変スナップショットとして保持し、書き込みはロック内で丸ごと差し替える。
    ロック取得後の差し替えは await を挟まないため、途中でキャンセルされることはない。
    """

    def __init__(self, flags: list[Flag] | None = None) -> None:
        self._flags: dict[str, Flag] = {f.key: f for f in flags or []}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Flag | None:
        return self._flags.get(key)

    async def list_all(self) -> list[Flag]:
        return [self._flags[key] for key in sorted(self._flags)]

    async def insert(self, flag: Flag, timeout: float | None = None) -> None:
        async with write_lock(self._lock, timeout):
            if flag.key in self._flags:
                raise ConflictError(flag.key)
            self._flags[flag.key] = flag

    async def update(self, key: str, mutate: FlagMutation, timeout: float | None = None) -> Flag:
        async with write_lock(self._lock, timeout):
            current = self._flags.get(key)
            if current is None:
                raise NotFoundError(f"feature flag not found: {key}")
            updated = mutate(current)
            self._flags[key] = updated
            return updated

    async def delete(self, key: str, timeout: float | None = None) -> bool:
        async with write_lock(self._lock, timeout):
            return self._flags.pop(key, None) is not None
