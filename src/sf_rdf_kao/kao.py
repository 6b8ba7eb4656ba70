"""知识访问对象（KAO）。

KAO 绑定一个实体类型，对外提供实例级 CRUD 与原始 SPARQL 查询。每个实例级操作
都在独立的 :class:`TransactionalSession` 中执行；存储侧失败不会抛出，而是返回
类型默认值（``None``、空列表、``False``），详细结果见 ``last_result``。

上下文解析规则：

============================================  =========================================
操作                                            使用的上下文
============================================  =========================================
create / create_with_uri / create_with_unique_id  仅显式参数
delete / delete_instance                        仅显式参数
retrieve_instance / retrieve_all_instances      仅显式参数
update                                          仅显式参数
execute_sparql_query_single_result              仅查询文本中的 ``FROM``
execute_sparql_query_result_list                显式参数（非 ``None`` 时），否则查询文本
execute_query_as_iterator                       显式参数与查询文本的并集
execute_boolean_query / execute_sparql_update_query  不限定（由查询自身决定）
============================================  =========================================

除布尔查询与更新外，每次操作都会把解析出的上下文记为当前上下文。
"""
from __future__ import annotations

from typing import Any, Generic, Iterable, Optional, TypeVar

from sf_rdf_kao.common.config import ConfigManager
from sf_rdf_kao.common.logging import LoggerFactory
from sf_rdf_kao.connection.factory import RepositoryFactory
from sf_rdf_kao.connection.repository import RDFConnection, Repository
from sf_rdf_kao.context import ContextLike, ContextSet, QueryContextExtractor
from sf_rdf_kao.mapping import Entity
from sf_rdf_kao.operations import CreateOperations, RemoveOperations, RetrieveOperations, UpdateOperations
from sf_rdf_kao.query.runner import QueryResultIterator, QueryRunner, SPARQLQueryRunner
from sf_rdf_kao.transaction.audit import AuditLogger
from sf_rdf_kao.transaction.session import SessionResult, TransactionalSession

E = TypeVar("E", bound=Entity)

Contexts = Optional[Iterable[ContextLike] | ContextSet]


class KnowledgeAccessObject(Generic[E]):
    """面向单一实体类型的知识访问对象。

    KAO 的字段（实体类型、当前上下文）没有加锁，同一实例不应被多个任务并发修改。
    """

    def __init__(
        self,
        entity_type: type[E],
        *,
        repository: Optional[Repository] = None,
        query_runner: Optional[QueryRunner] = None,
        audit_logger: Optional[AuditLogger] = None,
        create_operations: Optional[CreateOperations] = None,
        retrieve_operations: Optional[RetrieveOperations] = None,
        update_operations: Optional[UpdateOperations] = None,
        remove_operations: Optional[RemoveOperations] = None,
    ) -> None:
        """未注入仓库时首次使用才通过 :class:`RepositoryFactory` 获取进程共享仓库。"""

        self._entity_type: type[E] = entity_type
        self._repository = repository
        self._query_runner = query_runner
        self._audit_logger = (
            audit_logger if audit_logger is not None else AuditLogger.from_settings(ConfigManager.current().settings)
        )
        self._create = create_operations or CreateOperations()
        self._retrieve = retrieve_operations or RetrieveOperations()
        self._update = update_operations or UpdateOperations()
        self._remove = remove_operations or RemoveOperations()
        self._contexts = ContextSet.empty()
        self._logger = LoggerFactory.create_default_logger(__name__)
        self.last_result: SessionResult[Any] | None = None

    # ---- 协作者 -------------------------------------------------------

    @property
    def repository(self) -> Repository:
        if self._repository is None:
            self._repository = RepositoryFactory.get_repository()
        return self._repository

    @property
    def query_runner(self) -> QueryRunner:
        if self._query_runner is None:
            self._query_runner = SPARQLQueryRunner(self.repository, audit_logger=self._audit_logger)
        return self._query_runner

    # ---- 实例级操作 ---------------------------------------------------

    async def create(self, base_uri: str, instance_name: str, contexts: Contexts = None) -> E | None:
        """在 ``base_uri + instance_name`` 处创建实例，失败返回 ``None``。"""

        entity_type = self._entity_type
        scope = self._use_contexts(contexts)

        async def op(connection: RDFConnection) -> E:
            return await self._create.create(base_uri, instance_name, entity_type, connection, scope)

        return await self._run("create", scope, op, None)

    async def create_with_uri(self, uri: str, contexts: Contexts = None) -> E | None:
        entity_type = self._entity_type
        scope = self._use_contexts(contexts)

        async def op(connection: RDFConnection) -> E:
            return await self._create.create_with_uri(uri, entity_type, connection, scope)

        return await self._run("create", scope, op, None)

    async def create_with_unique_id(self, base_uri: str, instance_prefix: str, contexts: Contexts = None) -> E | None:
        """以 ``base_uri + instance_prefix + <uuid>`` 创建实例，URI 不与同类型已有实例冲突。"""

        entity_type = self._entity_type
        scope = self._use_contexts(contexts)

        async def op(connection: RDFConnection) -> E:
            return await self._create.create_with_unique_id(base_uri, instance_prefix, entity_type, connection, scope)

        return await self._run("create_unique", scope, op, None)

    async def delete(self, base_uri: str, instance_name: str, contexts: Contexts = None) -> None:
        """删除主语为 ``base_uri + instance_name`` 的全部语句；失败只记录日志。"""

        await self._delete_subject(f"{base_uri}{instance_name}", contexts)

    async def delete_instance(self, instance: Entity, contexts: Contexts = None) -> None:
        await self._delete_subject(str(instance), contexts)

    async def retrieve_instance(self, base_uri: str, instance_name: str, contexts: Contexts = None) -> E | None:
        entity_type = self._entity_type
        scope = self._use_contexts(contexts)

        async def op(connection: RDFConnection) -> E | None:
            return await self._retrieve.retrieve_instance(base_uri, instance_name, entity_type, connection, scope)

        return await self._run("retrieve", scope, op, None)

    async def retrieve_all_instances(self, contexts: Contexts = None) -> list[E]:
        """读取上下文中绑定类型的全部实例，按 URI 排序；失败返回空列表。"""

        entity_type = self._entity_type
        scope = self._use_contexts(contexts)

        async def op(connection: RDFConnection) -> list[E]:
            return await self._retrieve.retrieve_all_instances(entity_type, connection, scope)

        return await self._run("retrieve_all", scope, op, [])

    async def update(self, instance: E, contexts: Contexts = None) -> E | None:
        """把游离实例的字段值合并回存储，返回受管副本；失败返回 ``None``。"""

        entity_type = self._entity_type
        scope = self._use_contexts(contexts)

        async def op(connection: RDFConnection) -> E:
            return await self._update.update_detached_instance(instance, entity_type, connection, scope)

        return await self._run("update", scope, op, None)

    # ---- 原始查询 -----------------------------------------------------

    async def execute_sparql_query_single_result(self, query: str) -> Any:
        """上下文取自查询文本中的 ``FROM`` 子句。"""

        scope = self.set_contexts(self.retrieve_contexts(query))
        value = await self.query_runner.execute_query_as_single_result(query, scope)
        self._capture_runner_result()
        return value

    async def execute_sparql_query_result_list(self, query: str, contexts: Contexts = None) -> list[Any]:
        """``contexts`` 为 ``None`` 时改用查询文本中的 ``FROM`` 子句。"""

        resolved = self.retrieve_contexts(query) if contexts is None else ContextSet.from_iterable(contexts)
        scope = self.set_contexts(resolved)
        values = await self.query_runner.execute_query_as_list(query, scope)
        self._capture_runner_result()
        return values

    def execute_query_as_iterator(self, query: str, contexts: Contexts = None) -> QueryResultIterator:
        """返回惰性异步迭代器，上下文为显式参数与查询文本的并集。"""

        scope = self.set_contexts(ContextSet.merge(ContextSet.from_iterable(contexts), self.retrieve_contexts(query)))
        return self.query_runner.execute_query_as_iterator(query, scope)

    async def execute_boolean_query(self, query: str) -> bool:
        value = await self.query_runner.execute_boolean_query(query, ContextSet.empty())
        self._capture_runner_result()
        return value

    async def execute_sparql_update_query(self, query: str) -> bool:
        """直接执行更新语句，由查询执行器管理事务；成功提交返回 ``True``。"""

        value = await self.query_runner.execute_update_query(query, ContextSet.empty())
        self._capture_runner_result()
        return value

    # ---- 状态 ---------------------------------------------------------

    @property
    def entity_type(self) -> type[E]:
        return self._entity_type

    @entity_type.setter
    def entity_type(self, entity_type: type[E]) -> None:
        self.set_entity_type(entity_type)

    def set_entity_type(self, entity_type: type[Entity]) -> None:
        """切换后续操作使用的实体类型，进行中的操作不受影响。"""

        if not (isinstance(entity_type, type) and issubclass(entity_type, Entity)):
            raise TypeError(f"entity_type 必须是 Entity 子类: {entity_type!r}")
        self._entity_type = entity_type  # type: ignore[assignment]

    def retrieve_entity_type(self) -> type[E]:
        return self._entity_type

    @property
    def contexts(self) -> ContextSet:
        return self._contexts

    @contexts.setter
    def contexts(self, contexts: Contexts) -> None:
        self.set_contexts(contexts)

    def get_contexts(self) -> ContextSet:
        return self._contexts

    def set_contexts(self, contexts: Contexts) -> ContextSet:
        """替换当前上下文，``None`` 规范化为空集合。"""

        self._contexts = ContextSet.from_iterable(contexts)
        return self._contexts

    @staticmethod
    def retrieve_contexts(query: str) -> ContextSet:
        return QueryContextExtractor.extract(query)

    # ---- 内部工具 -----------------------------------------------------

    def _use_contexts(self, contexts: Contexts) -> ContextSet:
        return self.set_contexts(contexts)

    async def _delete_subject(self, subject: str, contexts: Contexts) -> None:
        scope = self._use_contexts(contexts)

        async def op(connection: RDFConnection) -> None:
            await self._remove.remove(subject, connection, scope)

        await self._run("delete", scope, op, None)

    async def _run(self, operation: str, contexts: ContextSet, op, default: Any) -> Any:
        session = TransactionalSession(
            self.repository,
            operation=operation,
            contexts=contexts,
            audit_logger=self._audit_logger,
        )
        result = await session.run(op, default=default)
        self.last_result = result
        if not result.ok:
            self._logger.warning(
                "KAO %s 未成功 entity=%s status=%s",
                operation,
                self._entity_type.__name__,
                result.status,
                extra={"trace_id": result.tx_id},
            )
        return result.value

    def _capture_runner_result(self) -> None:
        result = getattr(self._query_runner, "last_result", None)
        if isinstance(result, SessionResult):
            self.last_result = result
