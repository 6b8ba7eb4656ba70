"""单次逻辑操作的事务会话。

会话获取一条连接、关闭自动提交、执行操作并提交；操作失败时回滚。无论结果
如何都会关闭连接。所有存储侧失败都转换为 :class:`SessionResult` 返回，调用方
据此区分“没有数据”与“执行失败”。
"""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from sf_rdf_kao.common.exceptions import (
    APIError,
    CommitError,
    ErrorCode,
    OperationError,
    RepositoryConnectionError,
)
from sf_rdf_kao.common.logging import LoggerFactory
from sf_rdf_kao.common.observability import observe_session
from sf_rdf_kao.connection.repository import RDFConnection, Repository
from sf_rdf_kao.context import ContextSet

from .audit import AuditLogger, AuditRecord

T = TypeVar("T")

Operation = Callable[[RDFConnection], Awaitable[T]]


@dataclass(slots=True)
class SessionResult(Generic[T]):
    """事务会话的结果。

    ``ok`` 为假时 ``error`` 给出原因；提交失败时 ``value`` 仍是操作的返回值，但
    ``committed`` 为假，存储中未必持久化。
    """

    value: T
    ok: bool
    committed: bool = False
    error: Optional[APIError] = None
    operation: str = ""
    tx_id: str = ""
    duration_ms: float = 0.0

    @property
    def status(self) -> str:
        if self.ok:
            return "success"
        if isinstance(self.error, RepositoryConnectionError):
            return "connection_error"
        if isinstance(self.error, CommitError):
            return "commit_error"
        return "operation_error"


class TransactionalSession:
    """一次性事务会话，``run`` 只能调用一次。"""

    def __init__(
        self,
        repository: Repository,
        *,
        operation: str = "operation",
        contexts: ContextSet = ContextSet.empty(),
        audit_logger: Optional[AuditLogger] = None,
        actor: str | None = None,
    ) -> None:
        self._repository = repository
        self._operation = operation
        self._contexts = contexts
        self._audit_logger = audit_logger
        self._actor = actor
        self._used = False
        self._logger = LoggerFactory.create_default_logger(__name__)

    async def run(self, op: Operation[T], *, default: Any = None) -> SessionResult[T]:
        """在新连接上执行 ``op``。

        参数:
            op: 接收连接的协程函数。
            default: 获取连接失败或操作失败时返回的值。

        异常:
            RuntimeError: 会话被重复使用。
        """

        if self._used:
            raise RuntimeError("TransactionalSession 只能运行一次")
        self._used = True

        tx_id = str(uuid.uuid4())
        start = time.perf_counter()
        log_extra = {"trace_id": tx_id}

        try:
            connection = await self._repository.get_connection(trace_id=tx_id)
        except Exception as exc:  # noqa: BLE001
            error = exc if isinstance(exc, RepositoryConnectionError) else RepositoryConnectionError(
                ErrorCode.REPOSITORY_UNAVAILABLE,
                "获取仓库连接失败",
                details={"reason": str(exc)},
            )
            self._logger.error("%s 获取连接失败: %s", self._operation, error, exc_info=True, extra=log_extra)
            result: SessionResult[T] = SessionResult(value=default, ok=False, error=error)
            return await self._finish(result, tx_id, start)

        try:
            result = await self._execute(connection, op, default, log_extra)
        finally:
            await self._close(connection, log_extra)
        return await self._finish(result, tx_id, start)

    async def _execute(
        self,
        connection: RDFConnection,
        op: Operation[T],
        default: Any,
        log_extra: dict[str, str],
    ) -> SessionResult[T]:
        try:
            await connection.set_auto_commit(False)
            value = await op(connection)
        except Exception as exc:  # noqa: BLE001
            await self._rollback(connection, log_extra)
            details: dict[str, Any] = {"exception": type(exc).__name__, "reason": str(exc)}
            if isinstance(exc, APIError):
                details["code"] = exc.code.value
            error = OperationError(ErrorCode.OPERATION_FAILED, f"{self._operation} 执行失败", details=details)
            error.__cause__ = exc
            self._logger.error("%s 执行失败，已回滚: %s", self._operation, exc, exc_info=True, extra=log_extra)
            return SessionResult(value=default, ok=False, error=error)

        try:
            await connection.commit()
        except Exception as exc:  # noqa: BLE001
            error = CommitError(
                ErrorCode.COMMIT_FAILED,
                f"{self._operation} 提交失败",
                details={"exception": type(exc).__name__, "reason": str(exc)},
            )
            error.__cause__ = exc
            self._logger.error("%s 提交失败: %s", self._operation, exc, exc_info=True, extra=log_extra)
            return SessionResult(value=value, ok=False, error=error)
        return SessionResult(value=value, ok=True, committed=True)

    async def _rollback(self, connection: RDFConnection, log_extra: dict[str, str]) -> None:
        try:
            await connection.rollback()
        except Exception as exc:  # noqa: BLE001
            self._logger.error("%s 回滚失败: %s", self._operation, exc, exc_info=True, extra=log_extra)

    async def _close(self, connection: RDFConnection, log_extra: dict[str, str]) -> None:
        try:
            await connection.close()
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("%s 关闭连接失败: %s", self._operation, exc, exc_info=True, extra=log_extra)

    async def _finish(self, result: SessionResult[T], tx_id: str, start: float) -> SessionResult[T]:
        result.operation = self._operation
        result.tx_id = tx_id
        result.duration_ms = (time.perf_counter() - start) * 1000
        observe_session(self._operation, result.status, result.duration_ms / 1000)
        if self._audit_logger:
            await self._audit_logger.write_async(AuditRecord.from_session(result, self._contexts, self._actor))
        return result
