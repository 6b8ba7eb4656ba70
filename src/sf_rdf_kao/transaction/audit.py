"""会话审计：把每次事务会话的结果写入 PostgreSQL。

审计写入失败只记录警告，不影响会话结果。表结构::

    CREATE TABLE <schema>.kao_operation_audit (
        id BIGSERIAL PRIMARY KEY,
        op_type TEXT, actor TEXT, contexts JSONB, tx_id TEXT,
        result_status TEXT, error_code TEXT, latency_ms INTEGER, payload JSONB,
        created_at TIMESTAMPTZ DEFAULT now()
    );
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from sf_rdf_kao.common.config import Settings
from sf_rdf_kao.common.logging import LoggerFactory
from sf_rdf_kao.context import ContextSet

if TYPE_CHECKING:
    from sf_rdf_kao.transaction.session import SessionResult


@dataclass(frozen=True, slots=True)
class AuditRecord:
    """一条审计记录；``op_type`` 形如 ``kao.create``。"""

    op_type: str
    tx_id: str
    result_status: str
    latency_ms: float
    contexts: tuple[str, ...] = ()
    committed: bool = False
    error_code: str | None = None
    actor: str | None = None

    @classmethod
    def from_session(cls, result: "SessionResult[Any]", contexts: ContextSet, actor: str | None = None) -> "AuditRecord":
        return cls(
            op_type=f"kao.{result.operation}",
            tx_id=result.tx_id,
            result_status=result.status,
            latency_ms=result.duration_ms,
            contexts=tuple(contexts),
            committed=result.committed,
            error_code=result.error.code.value if result.error else None,
            actor=actor,
        )

    def to_params(self) -> dict[str, Any]:
        return {
            "op_type": self.op_type,
            "actor": self.actor or "system",
            "contexts": json.dumps(list(self.contexts), ensure_ascii=False),
            "tx_id": self.tx_id,
            "result_status": self.result_status,
            "error_code": self.error_code,
            "latency_ms": int(self.latency_ms),
            "payload": json.dumps({"committed": self.committed}, ensure_ascii=False),
        }


class AuditLogger:
    """基于 SQLAlchemy Engine 的审计写入器。"""

    def __init__(self, dsn: str, schema: str, *, engine: Optional[Engine] = None, logger: Optional[logging.Logger] = None) -> None:
        """允许注入 Engine 便于测试。"""

        self._engine = engine or create_engine(dsn, future=True, pool_pre_ping=True)
        self._insert = text(
            f"INSERT INTO {schema}.kao_operation_audit"
            " (op_type, actor, contexts, tx_id, result_status, error_code, latency_ms, payload)"
            " VALUES (:op_type, :actor, :contexts, :tx_id, :result_status, :error_code, :latency_ms, :payload)"
            " RETURNING id"
        )
        self._logger = logger or LoggerFactory.create_default_logger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["AuditLogger"]:
        """``audit.enabled`` 为假或未配置 DSN 时返回 ``None``。"""

        audit = settings.audit
        if not audit.enabled or not audit.dsn:
            return None
        return cls(audit.dsn, audit.db_schema)

    async def write_async(self, record: AuditRecord) -> str | None:
        return await asyncio.to_thread(self.write, record)

    def write(self, record: AuditRecord) -> str | None:
        """写入一条记录并返回其 ID；失败时记录警告并返回 ``None``。"""

        try:
            with self._engine.begin() as conn:
                new_id = conn.execute(self._insert, record.to_params()).scalar_one()
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "写入 kao_operation_audit 失败 op=%s: %s",
                record.op_type,
                exc,
                exc_info=True,
                extra={"trace_id": record.tx_id or "-"},
            )
            return None
        return str(new_id)
