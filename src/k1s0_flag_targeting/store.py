"""FlagStore 抽象基底クラス"""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

from .exceptions import FeatureFlagErrorCodes, StoreError
from .models import Flag

T = TypeVar("T")

FlagMutation = Callable[[Flag], Flag]


class FlagStore(ABC):
    """フラグカタログのストレージ抽象基底クラス。

    実装はフラグ集約（フラグ・バリエーション・ルール）を 1 単位で読み書きし、
    読み取りは常に完全なスナップショットを返すこと。
    書き込みの timeout は書き込みロックの取得待ちにのみ適用する。
    コミットを開始した書き込みは完了まで実行し、その結果を呼び出し元へ返す。
    """

    @abstractmethod
    async def get(self, key: str) -> Flag | None:
        """キーに対応するフラグのスナップショットを取得する。"""
        ...

    @abstractmethod
    async def list_all(self) -> list[Flag]:
        """全フラグのスナップショットをキー順で取得する。"""
        ...

    @abstractmethod
    async def insert(self, flag: Flag, timeout: float | None = None) -> None:
        """フラグを追加する。キーが既に存在する場合は ConflictError。"""
        ...

    @abstractmethod
    async def update(self, key: str, mutate: FlagMutation, timeout: float | None = None) -> Flag:
        """フラグに mutate を適用し、結果をアトミックに保存して返す。

        フラグが存在しない場合は NotFoundError。mutate が例外を送出した場合は何も保存しない。
        """
        ...

    @abstractmethod
    async def delete(self, key: str, timeout: float | None = None) -> bool:
        """フラグと所有するバリエーション・ルールを削除する。"""
        ...


def _timed_out(timeout: float, cause: Exception) -> StoreError:
    return StoreError(
        f"store call timed out after {timeout}s",
        cause=cause,
        code=FeatureFlagErrorCodes.STORE_TIMEOUT,
    )


async def call_with_timeout(awaitable: Awaitable[T], timeout: float | None) -> T:
    """読み取り系のストア呼び出しにタイムアウトを適用する。リトライは行わない。

    Raises:
        StoreError: タイムアウトした場合
    """
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise _timed_out(timeout, e) from e


@contextlib.asynccontextmanager
async def write_lock(lock: asyncio.Lock, timeout: float | None) -> AsyncIterator[None]:
    """書き込みロックを取得する。取得待ちが timeout を超えたら何も書き込まずに StoreError。"""
    if timeout is None:
        await lock.acquire()
    else:
        try:
            await asyncio.wait_for(lock.acquire(), timeout)
        except asyncio.TimeoutError as e:
            raise _timed_out(timeout, e) from e
    try:
        yield
    finally:
        lock.release()


async def run_commit(commit: Callable[[], T]) -> T:
    """ブロッキングなコミット処理をスレッドで最後まで実行する。

    呼び出し元がキャンセルされてもコミットの完了を待ってから送出するため、
    ロックはコミット中に解放されない。
    """
    task = asyncio.ensure_future(asyncio.to_thread(commit))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait({task})
        raise
