"""AuditLogger 测试：以桩 Engine 验证写入参数与失败降级。"""
from __future__ import annotations

import json
from contextlib import contextmanager

import pytest

from sf_rdf_kao.common.config import Settings
from sf_rdf_kao.common.exceptions import CommitError, ErrorCode
from sf_rdf_kao.context import ContextSet
from sf_rdf_kao.transaction.audit import AuditLogger, AuditRecord
from sf_rdf_kao.transaction.session import SessionResult


class _Result:
    def __init__(self, value: int = 1) -> None:
        self._value = value

    def scalar_one(self) -> int:
        return self._value


class _Conn:
    def __init__(self, should_fail: bool = False) -> None:
        self._should_fail = should_fail
        self.last_sql: str | None = None
        self.last_params: dict | None = None

    def execute(self, sql, params):  # noqa: ANN001 - 模拟 sqlalchemy 接口
        if self._should_fail:
            raise RuntimeError("fail execute")
        self.last_sql = str(sql)
        self.last_params = params
        return _Result(123)


class _Engine:
    def __init__(self, should_fail: bool = False) -> None:
        self._should_fail = should_fail
        self.last_conn: _Conn | None = None

    @contextmanager
    def begin(self):
        conn = _Conn(self._should_fail)
        self.last_conn = conn
        yield conn


def _record(**overrides) -> AuditRecord:
    values = {"op_type": "kao.create", "tx_id": "tx", "result_status": "success", "latency_ms": 12.7}
    values.update(overrides)
    return AuditRecord(**values)


def test_write_inserts_row() -> None:
    engine = _Engine()
    logger = AuditLogger(dsn="postgresql://", schema="audit", engine=engine)

    new_id = logger.write(_record(contexts=("http://ex.org/g1",), committed=True))

    assert new_id == "123"
    conn = engine.last_conn
    assert conn is not None and conn.last_params is not None
    assert "audit.kao_operation_audit" in conn.last_sql
    assert conn.last_params["actor"] == "system"
    assert conn.last_params["latency_ms"] == 12
    assert json.loads(conn.last_params["contexts"]) == ["http://ex.org/g1"]
    assert json.loads(conn.last_params["payload"]) == {"committed": True}
    assert conn.last_params["error_code"] is None


def test_write_failure_returns_none() -> None:
    logger = AuditLogger(dsn="postgresql://", schema="public", engine=_Engine(should_fail=True))

    assert logger.write(_record(op_type="kao.delete", result_status="operation_error")) is None


@pytest.mark.asyncio
async def test_write_async_returns_id() -> None:
    logger = AuditLogger(dsn="postgresql://", schema="public", engine=_Engine())

    assert await logger.write_async(_record(op_type="kao.retrieve")) == "123"


def test_record_from_commit_failure() -> None:
    result = SessionResult(
        value=None,
        ok=False,
        error=CommitError(ErrorCode.COMMIT_FAILED, "提交失败"),
        operation="update",
        tx_id="tx-9",
        duration_ms=4.0,
    )

    record = AuditRecord.from_session(result, ContextSet.from_iterable(["http://ex.org/g2"]), actor="svc")

    assert record.op_type == "kao.update"
    assert record.result_status == "commit_error"
    assert record.error_code == ErrorCode.COMMIT_FAILED.value
    assert record.contexts == ("http://ex.org/g2",)
    assert record.committed is False
    assert record.to_params()["actor"] == "svc"


def test_from_settings_disabled_by_default() -> None:
    assert AuditLogger.from_settings(Settings()) is None
    enabled_without_dsn = Settings.model_validate({"audit": {"enabled": True}})
    assert AuditLogger.from_settings(enabled_without_dsn) is None
