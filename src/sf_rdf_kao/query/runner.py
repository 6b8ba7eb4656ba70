"""原始 SPARQL 查询执行器。

每次调用都在独立的 :class:`TransactionalSession` 中执行，失败时记录日志并返回
类型默认值（``None``、空列表、空迭代器、``False``），最近一次的会话结果保存在
``last_result`` 中。
"""
from __future__ import annotations

from typing import Any, AsyncIterator, Optional, Protocol, TYPE_CHECKING, runtime_checkable

from sf_rdf_kao.common.logging import LoggerFactory
from sf_rdf_kao.connection.repository import RDFConnection, Repository
from sf_rdf_kao.context import ContextSet
from sf_rdf_kao.converter import ResultMapper
from sf_rdf_kao.transaction.session import SessionResult, TransactionalSession

if TYPE_CHECKING:  # pragma: no cover - 仅用于类型提示
    from sf_rdf_kao.transaction.audit import AuditLogger


@runtime_checkable
class QueryRunner(Protocol):
    """KAO 依赖的查询执行接口。"""

    async def execute_query_as_single_result(self, query: str, contexts: ContextSet) -> Any: ...

    async def execute_query_as_list(self, query: str, contexts: ContextSet) -> list[Any]: ...

    def execute_query_as_iterator(self, query: str, contexts: ContextSet) -> AsyncIterator[Any]: ...

    async def execute_boolean_query(self, query: str, contexts: ContextSet = ...) -> bool: ...

    async def execute_update_query(self, query: str, contexts: ContextSet = ...) -> bool: ...


class QueryResultIterator:
    """惰性、只能向前、不可重启的查询结果异步迭代器。

    第一次 ``__anext__`` 时才执行查询；查询失败时表现为空迭代器。
    """

    def __init__(self, runner: "SPARQLQueryRunner", query: str, contexts: ContextSet) -> None:
        self._runner = runner
        self._query = query
        self._contexts = contexts
        self._items: list[Any] | None = None
        self._position = 0

    def __aiter__(self) -> "QueryResultIterator":
        return self

    async def __anext__(self) -> Any:
        if self._items is None:
            self._items = await self._runner.execute_query_as_list(self._query, self._contexts)
        if self._position >= len(self._items):
            raise StopAsyncIteration
        item = self._items[self._position]
        self._position += 1
        return item

    @property
    def started(self) -> bool:
        return self._items is not None


class SPARQLQueryRunner:
    """基于 :class:`Repository` 的查询执行器。

    结果行经 :class:`ResultMapper` 转换；单变量查询的每行折叠为该变量的值，多变量
    查询保留 ``{变量: 单元格}`` 字典。
    """

    def __init__(
        self,
        repository: Repository,
        *,
        result_mapper: Optional[ResultMapper] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> None:
        self._repository = repository
        self._result_mapper = result_mapper or ResultMapper()
        self._audit_logger = audit_logger
        self._logger = LoggerFactory.create_default_logger(__name__)
        self.last_result: SessionResult[Any] | None = None

    async def execute_query_as_single_result(self, query: str, contexts: ContextSet) -> Any:
        """返回第一行结果；无结果或失败时返回 ``None``。"""

        async def op(connection: RDFConnection) -> Any:
            rows = self._result_mapper.map_result(await connection.select(query, contexts=contexts))
            return ResultMapper.first_value(rows[0]) if rows else None

        return await self._run("query.single", contexts, op, None)

    async def execute_query_as_list(self, query: str, contexts: ContextSet) -> list[Any]:
        async def op(connection: RDFConnection) -> list[Any]:
            rows = self._result_mapper.map_result(await connection.select(query, contexts=contexts))
            return [ResultMapper.first_value(row) for row in rows]

        return await self._run("query.list", contexts, op, [])

    def execute_query_as_iterator(self, query: str, contexts: ContextSet) -> QueryResultIterator:
        return QueryResultIterator(self, query, contexts)

    async def execute_boolean_query(self, query: str, contexts: ContextSet = ContextSet.empty()) -> bool:
        async def op(connection: RDFConnection) -> bool:
            return await connection.ask(query, contexts=contexts)

        return bool(await self._run("query.boolean", contexts, op, False))

    async def execute_update_query(self, query: str, contexts: ContextSet = ContextSet.empty()) -> bool:
        """在独立事务中执行 UPDATE，仅在提交成功时返回 ``True``。

        更新语句自身的 ``GRAPH``/``WITH`` 子句决定写入位置，``contexts`` 只用于审计。
        """

        async def op(connection: RDFConnection) -> bool:
            await connection.update(query)
            return True

        await self._run("query.update", contexts, op, False)
        return self.last_result is not None and self.last_result.ok

    async def _run(self, operation: str, contexts: ContextSet, op, default: Any) -> Any:
        session = TransactionalSession(
            self._repository,
            operation=operation,
            contexts=contexts,
            audit_logger=self._audit_logger,
        )
        result = await session.run(op, default=default)
        self.last_result = result
        if not result.ok:
            self._logger.warning(
                "%s 未成功 status=%s contexts=%s", operation, result.status, list(contexts), extra={"trace_id": result.tx_id}
            )
        return result.value
