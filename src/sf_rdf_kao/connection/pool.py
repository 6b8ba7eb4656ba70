"""连接池包装：限制同时借出的连接数量。

池本身不复用底层连接（每次借出仍向内部仓库申请新连接），只负责并发上限与
等待超时；连接 ``close()`` 时归还名额。
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from sf_rdf_kao.common.exceptions import ErrorCode, RepositoryConnectionError
from sf_rdf_kao.context import ContextSet

from .repository import RDFConnection, Repository


@dataclass
class PoolStats:
    """连接池统计。"""

    max_size: int
    checked_out: int = 0
    total_checkouts: int = 0
    total_timeouts: int = 0


class PooledConnection:
    """代理连接，关闭时归还池名额。"""

    def __init__(self, inner: RDFConnection, pool: "PooledRepository") -> None:
        self._inner = inner
        self._pool = pool
        self._released = False

    @property
    def auto_commit(self) -> bool:
        return self._inner.auto_commit

    @property
    def closed(self) -> bool:
        return self._inner.closed

    async def set_auto_commit(self, enabled: bool) -> None:
        await self._inner.set_auto_commit(enabled)

    async def select(self, query: str, *, contexts: ContextSet = ContextSet.empty()) -> dict[str, Any]:
        return await self._inner.select(query, contexts=contexts)

    async def ask(self, query: str, *, contexts: ContextSet = ContextSet.empty()) -> bool:
        return await self._inner.ask(query, contexts=contexts)

    async def update(self, update: str) -> None:
        await self._inner.update(update)

    async def commit(self) -> None:
        await self._inner.commit()

    async def rollback(self) -> None:
        await self._inner.rollback()

    async def close(self) -> None:
        try:
            await self._inner.close()
        finally:
            if not self._released:
                self._released = True
                self._pool._release()


class PooledRepository:
    """为任意 :class:`Repository` 增加并发上限。"""

    def __init__(self, repository: Repository, *, max_size: int = 10, acquire_timeout: float = 10.0) -> None:
        if max_size < 1:
            raise ValueError("max_size 必须 >= 1")
        self._repository = repository
        self._acquire_timeout = acquire_timeout
        self._semaphore = asyncio.Semaphore(max_size)
        self.stats = PoolStats(max_size=max_size)

    async def get_connection(self, *, trace_id: str | None = None) -> PooledConnection:
        """借出连接；等待超过 ``acquire_timeout`` 抛出 ``REPOSITORY_EXHAUSTED``。"""

        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=self._acquire_timeout)
        except asyncio.TimeoutError as exc:
            self.stats.total_timeouts += 1
            raise RepositoryConnectionError(
                ErrorCode.REPOSITORY_EXHAUSTED,
                "连接池已耗尽",
                details={"maxSize": self.stats.max_size, "timeout": self._acquire_timeout},
            ) from exc
        try:
            inner = await self._repository.get_connection(trace_id=trace_id)
        except BaseException:
            self._semaphore.release()
            raise
        self.stats.checked_out += 1
        self.stats.total_checkouts += 1
        return PooledConnection(inner, self)

    def _release(self) -> None:
        self.stats.checked_out -= 1
        self._semaphore.release()
