"""Prometheus 指标定义与上报函数。"""
from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

FUSEKI_RESPONSE_SECONDS = Histogram(
    "sf_fuseki_response_seconds",
    "Fuseki 请求耗时（秒）",
    ["operation", "status"],
)
FUSEKI_FAILURES = Counter(
    "sf_fuseki_failures_total",
    "Fuseki 请求失败次数",
    ["operation", "reason"],
)
FUSEKI_CIRCUIT_STATE = Gauge(
    "sf_fuseki_circuit_breaker_state",
    "Fuseki 熔断器状态（1=打开，0=关闭）",
    ["operation"],
)
KAO_SESSIONS = Counter(
    "sf_kao_sessions_total",
    "事务会话结果计数",
    ["operation", "status"],
)
KAO_SESSION_SECONDS = Histogram(
    "sf_kao_session_seconds",
    "事务会话耗时（秒）",
    ["operation"],
)


def observe_fuseki_response(operation: str, status_code: int, seconds: float) -> None:
    FUSEKI_RESPONSE_SECONDS.labels(operation=operation, status=str(status_code)).observe(seconds)


def observe_fuseki_failure(operation: str, reason: str) -> None:
    FUSEKI_FAILURES.labels(operation=operation, reason=reason).inc()


def set_fuseki_circuit_state(operation: str, is_open: bool) -> None:
    FUSEKI_CIRCUIT_STATE.labels(operation=operation).set(1 if is_open else 0)


def observe_session(operation: str, status: str, seconds: float) -> None:
    """记录一次事务会话的结果（success / connection_error / operation_error / commit_error）。"""

    KAO_SESSIONS.labels(operation=operation, status=status).inc()
    KAO_SESSION_SECONDS.labels(operation=operation).observe(seconds)
