"""FileFlagStore 実装

YAML ファイルにカタログ全体を保存する。
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConflictError, NotFoundError, StoreError
from .models import Flag
from .store import FlagMutation, FlagStore, run_commit, write_lock


class FileFlagStore(FlagStore):
    """YAML ファイルバックエンドのフラグストア。

    ファイルは一時ファイルへの書き込み後に os.replace で差し替えるため、
    読み取り側が書きかけの内容を観測することはない。
    同一プロセス内の書き込みはロックで直列化し、読み込みから書き込みまでを
    1 つのコミットとしてスレッドで実行する。
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> Flag | None:
        catalog = await asyncio.to_thread(self._read)
        return catalog.get(key)

    async def list_all(self) -> list[Flag]:
        catalog = await asyncio.to_thread(self._read)
        return [catalog[key] for key in sorted(catalog)]

    async def insert(self, flag: Flag, timeout: float | None = None) -> None:
        def commit() -> None:
            catalog = self._read()
            if flag.key in catalog:
                raise ConflictError(flag.key)
            catalog[flag.key] = flag
            self._write(catalog)

        async with write_lock(self._lock, timeout):
            await run_commit(commit)

    async def update(self, key: str, mutate: FlagMutation, timeout: float | None = None) -> Flag:
        def commit() -> Flag:
            catalog = self._read()
            current = catalog.get(key)
            if current is None:
                raise NotFoundError(f"feature flag not found: {key}")
            updated = mutate(current)
            catalog[key] = updated
            self._write(catalog)
            return updated

        async with write_lock(self._lock, timeout):
            return await run_commit(commit)

    async def delete(self, key: str, timeout: float | None = None) -> bool:
        def commit() -> bool:
            catalog = self._read()
            if catalog.pop(key, None) is None:
                return False
            self._write(catalog)
            return True

        async with write_lock(self._lock, timeout):
            return await run_commit(commit)

    def _read(self) -> dict[str, Flag]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"failed to read flag catalog: {self._path}", cause=e) from e
        try:
            data: dict[str, Any] = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise StoreError(f"failed to parse flag catalog: {self._path}", cause=e) from e
        try:
            flags = [Flag.from_dict(item) for item in data.get("flags") or []]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StoreError(f"malformed flag catalog: {self._path}", cause=e) from e
        return {flag.key: flag for flag in flags}

    def _write(self, catalog: dict[str, Flag]) -> None:
        document = {"flags": [catalog[key].to_dict() for key in sorted(catalog)]}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", dir=str(self._path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    yaml.safe_dump(document, fh, sort_keys=False, allow_unicode=True)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"failed to write flag catalog: {self._path}", cause=e) from e
