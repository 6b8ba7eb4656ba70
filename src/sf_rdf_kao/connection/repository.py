"""仓库与连接协议，以及带写缓冲的连接基类。

SPARQL 1.1 协议本身没有跨请求事务，因此连接在关闭自动提交后会把所有 UPDATE
语句缓存在本地，``commit()`` 时以单个 UPDATE 请求（``;`` 分隔）整体提交，存储端
保证该请求的原子性；``rollback()`` 只需丢弃缓冲。事务内的读取看不到本事务尚未
提交的写入。
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from sf_rdf_kao.common.exceptions import ErrorCode, ExternalServiceError
from sf_rdf_kao.common.logging import LoggerFactory
from sf_rdf_kao.context import ContextSet


@runtime_checkable
class RDFConnection(Protocol):
    """单次逻辑操作使用的存储连接。"""

    @property
    def auto_commit(self) -> bool: ...

    @property
    def closed(self) -> bool: ...

    async def set_auto_commit(self, enabled: bool) -> None: ...

    async def select(self, query: str, *, contexts: ContextSet = ...) -> dict[str, Any]:
        """返回 ``{"vars": [...], "bindings": [...]}``（SPARQL JSON 结果格式）。"""

    async def ask(self, query: str, *, contexts: ContextSet = ...) -> bool: ...

    async def update(self, update: str) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    async def close(self) -> None: ...


@runtime_checkable
class Repository(Protocol):
    """连接来源。获取失败时抛出 :class:`RepositoryConnectionError`。"""

    async def get_connection(self, *, trace_id: str | None = None) -> RDFConnection: ...


class BufferedConnection:
    """实现自动提交开关、写缓冲与关闭语义的连接基类。

    子类只需实现 ``_select``、``_ask`` 与 ``_apply_updates``。
    """

    def __init__(self, *, trace_id: str | None = None) -> None:
        self.trace_id = trace_id
        self._auto_commit = True
        self._closed = False
        self._pending: list[str] = []
        self._logger = LoggerFactory.create_default_logger(__name__)

    @property
    def auto_commit(self) -> bool:
        return self._auto_commit

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_updates(self) -> tuple[str, ...]:
        return tuple(self._pending)

    async def set_auto_commit(self, enabled: bool) -> None:
        """切换自动提交；由关闭切回开启时先提交已缓冲的写入。"""

        self._ensure_open()
        if enabled and not self._auto_commit and self._pending:
            await self.commit()
        self._auto_commit = enabled

    async def select(self, query: str, *, contexts: ContextSet = ContextSet.empty()) -> dict[str, Any]:
        self._ensure_open()
        return await self._select(query, contexts)

    async def ask(self, query: str, *, contexts: ContextSet = ContextSet.empty()) -> bool:
        self._ensure_open()
        return await self._ask(query, contexts)

    async def update(self, update: str) -> None:
        self._ensure_open()
        if not update.strip():
            return
        if self._auto_commit:
            await self._apply_updates([update])
        else:
            self._pending.append(update)

    async def commit(self) -> None:
        self._ensure_open()
        if not self._pending:
            return
        statements, self._pending = self._pending, []
        await self._apply_updates(statements)

    async def rollback(self) -> None:
        self._ensure_open()
        self._pending.clear()

    async def close(self) -> None:
        if self._closed:
            return
        if self._pending:
            self._logger.warning(
                "连接关闭时丢弃 %d 条未提交的更新",
                len(self._pending),
                extra={"trace_id": self.trace_id or "-"},
            )
            self._pending.clear()
        self._closed = True

    # ---- 子类实现 -----------------------------------------------------

    async def _select(self, query: str, contexts: ContextSet) -> dict[str, Any]:
        raise NotImplementedError

    async def _ask(self, query: str, contexts: ContextSet) -> bool:
        raise NotImplementedError

    async def _apply_updates(self, statements: list[str]) -> None:
        raise NotImplementedError

    def _ensure_open(self) -> None:
        if self._closed:
            raise ExternalServiceError(ErrorCode.CONNECTION_CLOSED, "连接已关闭")
