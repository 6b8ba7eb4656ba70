"""平台统一异常与错误码。

所有异常均携带 :class:`ErrorCode` 与可选的 ``details`` 字典，便于日志、审计与
``SessionResult`` 上报时保持一致的结构。"""
from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """错误码枚举，取值同时用作审计表 ``error_code`` 字段。"""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    FUSEKI_QUERY_ERROR = "FUSEKI_QUERY_ERROR"
    FUSEKI_CONNECT_ERROR = "FUSEKI_CONNECT_ERROR"
    FUSEKI_CIRCUIT_OPEN = "FUSEKI_CIRCUIT_OPEN"
    REPOSITORY_UNAVAILABLE = "REPOSITORY_UNAVAILABLE"
    REPOSITORY_EXHAUSTED = "REPOSITORY_EXHAUSTED"
    CONNECTION_CLOSED = "CONNECTION_CLOSED"
    OPERATION_FAILED = "OPERATION_FAILED"
    COMMIT_FAILED = "COMMIT_FAILED"
    INVALID_ENTITY = "INVALID_ENTITY"


class APIError(Exception):
    """所有平台异常的基类。"""

    def __init__(self, code: ErrorCode, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """序列化为日志/审计友好的字典。"""

        return {"code": self.code.value, "message": self.message, "details": self.details}


class ExternalServiceError(APIError):
    """外部服务（Fuseki 等三元组存储）调用失败。"""


class RepositoryConnectionError(ExternalServiceError):
    """无法从仓库获取连接：存储不可达、熔断打开或连接池耗尽。"""


class TransactionError(APIError):
    """事务会话内的失败。"""


class OperationError(TransactionError):
    """业务操作在事务内抛出异常，已回滚。"""


class CommitError(TransactionError):
    """操作已完成但提交失败，存储状态可能与返回值不一致。"""


class MappingError(APIError):
    """实体与 RDF 语句之间的映射失败。"""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.INVALID_ENTITY, message, details=details)
