"""Fuseki/SPARQL 1.1 协议 HTTP 客户端。

提供 `RDFClient` 协议与 `FusekiClient` 实现，覆盖 KAO 所需的 SELECT、ASK、UPDATE
三类请求，并在客户端侧内置：

* 请求级超时与可选的指数退避重试（默认单次尝试）；
* 基于连续失败次数的 :class:`CircuitBreaker`，`health()` 会反映其状态；
* ``default-graph-uri`` 参数，用于把查询限定在若干命名图的并集上；
* 统一的 trace id 透传。

所有请求均使用 HTTP POST 完成，与 Jena Fuseki REST 接口保持兼容。"""
from __future__ import annotations

import asyncio
import random
import time
from threading import Lock
from typing import Any, Callable, Iterable, Protocol

import httpx

from sf_rdf_kao.common.exceptions import ErrorCode, ExternalServiceError
from sf_rdf_kao.common.logging import LoggerFactory
from sf_rdf_kao.common.observability import (
    observe_fuseki_failure,
    observe_fuseki_response,
    set_fuseki_circuit_state,
)

SPARQL_RESULTS_JSON = "application/sparql-results+json"

_STATUS_REASONS = {408: "timeout", 409: "conflict", 429: "rate_limited"}
_STATUS_ERROR_CODES = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UNAUTHENTICATED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
}
_TRANSPORT_REASONS: tuple[tuple[type[Exception], str], ...] = (
    (httpx.ReadTimeout, "timeout"),
    (httpx.ConnectTimeout, "connect_timeout"),
    (httpx.ConnectError, "connect_error"),
)


class RDFClient(Protocol):
    """RDF 客户端最小协议。"""

    async def select(
        self,
        query: str,
        *,
        default_graph_uris: Iterable[str] | None = None,
        timeout: int | None = 30,
        trace_id: str | None = None,
    ) -> dict[str, Any]:
        """执行 SPARQL SELECT 查询。

        参数：
            query：完整的 SELECT 语句，例如 ``"SELECT * WHERE { ?s ?p ?o } LIMIT 10"``。
            default_graph_uris：作为默认图并集的命名图 IRI 列表；``None`` 表示由存储决定。
            timeout：本次请求的超时（秒），``None`` 表示使用默认值。
            trace_id：可选的链路追踪 ID。

        返回：至少包含 ``vars``、``bindings`` 和 ``stats`` 的字典。"""

    async def ask(
        self,
        query: str,
        *,
        default_graph_uris: Iterable[str] | None = None,
        timeout: int | None = 30,
        trace_id: str | None = None,
    ) -> dict[str, Any]:
        """执行 SPARQL ASK 查询，返回包含 ``boolean`` 与 ``stats`` 的字典。"""

    async def update(self, update: str, *, timeout: int | None = 30, trace_id: str | None = None) -> dict[str, Any]:
        """执行 SPARQL UPDATE 请求，返回包含 ``status``、``durationMs`` 的字典。"""

    async def health(self) -> dict[str, Any]:
        """返回健康检查信息，``ok`` 为 False 时不应再发起请求。"""


class CircuitBreaker:
    """按连续失败次数打开、恢复窗口结束后自动关闭的熔断器。

    状态变化会同步到 ``sf_fuseki_circuit_breaker_state`` 指标，标签取触发变化的操作名。
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        *,
        record_timeout_only: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.record_timeout_only = record_timeout_only
        self.failure_count = 0
        self.open_until: float | None = None
        self._clock = clock
        self._lock = Lock()
        self._logger = LoggerFactory.create_default_logger(__name__)

    @classmethod
    def from_policy(cls, policy: dict[str, Any] | None) -> "CircuitBreaker":
        """从 ``failureThreshold``/``recoveryTimeout``/``recordTimeoutOnly`` 形式的字典构造。"""

        policy = policy or {}
        return cls(
            int(policy.get("failureThreshold", 5)),
            float(policy.get("recoveryTimeout", 30.0)),
            record_timeout_only=bool(policy.get("recordTimeoutOnly", False)),
        )

    def now(self) -> float:
        return self._clock()

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self.open_until is not None and self.now() < self.open_until

    def guard(self, operation: str, trace_id: str | None = None) -> None:
        """熔断打开时抛出 ``FUSEKI_CIRCUIT_OPEN``；窗口已过则复位并放行。"""

        with self._lock:
            if self.open_until is None:
                return
            remaining = self.open_until - self.now()
            if remaining <= 0:
                self.open_until = None
                self.failure_count = 0
                set_fuseki_circuit_state(operation, False)
                self._logger.info("Fuseki 熔断窗口结束，允许请求重试", extra={"trace_id": trace_id or "-"})
                return
        observe_fuseki_failure(operation, "circuit_open")
        raise ExternalServiceError(
            ErrorCode.FUSEKI_CIRCUIT_OPEN,
            "Fuseki 服务已被熔断",
            details={"recoveryAfter": remaining, "operation": operation},
        )

    def record_failure(self, operation: str, reason: str, trace_id: str | None = None) -> None:
        with self._lock:
            if self.open_until is not None:
                return
            self.failure_count += 1
            if self.failure_count < self.failure_threshold:
                return
            self.open_until = self.now() + self.recovery_timeout
        set_fuseki_circuit_state(operation, True)
        self._logger.warning(
            "Fuseki 熔断器已打开 operation=%s reason=%s recovery_timeout=%s",
            operation,
            reason,
            self.recovery_timeout,
            extra={"trace_id": trace_id or "-"},
        )

    def record_success(self, operation: str) -> None:
        with self._lock:
            self.failure_count = 0
            was_open, self.open_until = self.open_until is not None, None
        if was_open:
            set_fuseki_circuit_state(operation, False)

    def counts_transport_error(self, exc: Exception) -> bool:
        return not self.record_timeout_only or isinstance(exc, (httpx.ReadTimeout, httpx.ConnectTimeout))


class FusekiClient:
    """与 Fuseki REST 接口交互的 HTTP 客户端。"""

    _DEFAULT_RETRY_CODES = frozenset({408, 409, 429, 500, 502, 503, 504})

    def __init__(
        self,
        endpoint: str,
        dataset: str,
        *,
        auth: tuple[str, str] | None = None,
        trace_header: str = "X-Trace-Id",
        default_timeout: int = 30,
        max_timeout: int = 120,
        retry_policy: dict[str, Any] | None = None,
        circuit_breaker: dict[str, Any] | None = None,
    ) -> None:
        """构造 Fuseki 客户端。

        参数：
            endpoint：Fuseki 服务地址，例如 ``"http://localhost:3030"``。
            dataset：目标数据集名称，例如 ``"kao"``。
            auth：可选的 Basic Auth 凭据 ``("username", "password")``。
            trace_header：携带 ``trace_id`` 的请求头名称。
            default_timeout：默认超时（秒），必须 >= 1。
            max_timeout：超时上限（秒），必须 >= ``default_timeout``。
            retry_policy：``max_attempts``、``backoff_seconds``、``backoff_multiplier``、
                ``jitter_seconds``、``retryable_status_codes``。
            circuit_breaker：见 :meth:`CircuitBreaker.from_policy`。"""

        self.endpoint = endpoint.rstrip("/")
        self.dataset = dataset.strip("/")
        self.trace_header = trace_header
        self.breaker = CircuitBreaker.from_policy(circuit_breaker)
        self._default_timeout = default_timeout
        self._max_timeout = max_timeout
        policy = dict(retry_policy or {})
        self._retry_codes = frozenset(policy.pop("retryable_status_codes", None) or self._DEFAULT_RETRY_CODES)
        self._retry_policy = {"max_attempts": 1, "backoff_seconds": 0.5, "backoff_multiplier": 2.0, "jitter_seconds": 0.1}
        self._retry_policy.update({key: value for key, value in policy.items() if value is not None})
        self._auth = httpx.BasicAuth(*auth) if auth else None

    async def select(
        self,
        query: str,
        *,
        default_graph_uris: Iterable[str] | None = None,
        timeout: int | None = 30,
        trace_id: str | None = None,
    ) -> dict[str, Any]:
        data, stats = await self._query(query, default_graph_uris, timeout, trace_id)
        return {
            "vars": data.get("head", {}).get("vars", []),
            "bindings": data.get("results", {}).get("bindings", []),
            "stats": stats,
        }

    async def ask(
        self,
        query: str,
        *,
        default_graph_uris: Iterable[str] | None = None,
        timeout: int | None = 30,
        trace_id: str | None = None,
    ) -> dict[str, Any]:
        data, stats = await self._query(query, default_graph_uris, timeout, trace_id)
        return {"boolean": bool(data.get("boolean", False)), "stats": stats}

    async def update(self, update: str, *, timeout: int | None = 30, trace_id: str | None = None) -> dict[str, Any]:
        response, duration_ms = await self._post(
            "update",
            update,
            content_type="application/sparql-update",
            params=None,
            timeout=timeout,
            trace_id=trace_id,
        )
        return {"status": response.status_code, "durationMs": duration_ms}

    async def health(self) -> dict[str, Any]:
        """返回探活信息，不产生实际负载；熔断打开期间 ``ok`` 为 False。"""

        circuit_open = self.breaker.is_open
        return {"ok": not circuit_open, "backend": "fuseki", "dataset": self.dataset, "circuitOpen": circuit_open}

    async def _query(
        self,
        query: str,
        default_graph_uris: Iterable[str] | None,
        timeout: int | None,
        trace_id: str | None,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        params = [("default-graph-uri", str(uri)) for uri in default_graph_uris or ()] or None
        response, duration_ms = await self._post(
            "query",
            query,
            content_type="application/sparql-query",
            params=params,
            timeout=timeout,
            trace_id=trace_id,
        )
        return response.json(), {"status": response.status_code, "durationMs": duration_ms}

    async def _post(
        self,
        operation: str,
        body: str,
        *,
        content_type: str,
        params: list[tuple[str, str]] | None,
        timeout: int | None,
        trace_id: str | None,
    ) -> tuple[httpx.Response, float]:
        """向 ``/{dataset}/{operation}`` 发送 POST 请求并应用重试与熔断策略。

        异常：达到最大尝试次数或遇到不可重试的错误时抛出 :class:`ExternalServiceError`。"""

        self.breaker.guard(operation, trace_id)
        url = f"{self.endpoint}/{self.dataset}/{operation}"
        headers = {"Accept": SPARQL_RESULTS_JSON, "Content-Type": content_type}
        if trace_id:
            headers[self.trace_header] = trace_id
        max_attempts = max(1, int(self._retry_policy["max_attempts"]))
        backoff = float(self._retry_policy["backoff_seconds"])

        attempt = 0
        while True:
            attempt += 1
            last_attempt = attempt >= max_attempts
            started = time.perf_counter()
            try:
                async with httpx.AsyncClient(timeout=self._resolve_timeout(timeout)) as client:
                    response = await client.post(
                        url,
                        params=params,
                        content=body.encode("utf-8"),
                        headers=headers,
                        auth=self._auth,
                    )
            except (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.ConnectError) as exc:
                reason = next(label for kind, label in _TRANSPORT_REASONS if isinstance(exc, kind))
                observe_fuseki_failure(operation, reason)
                if self.breaker.counts_transport_error(exc):
                    self.breaker.record_failure(operation, reason, trace_id)
                if last_attempt:
                    raise ExternalServiceError(
                        ErrorCode.FUSEKI_CONNECT_ERROR,
                        "Fuseki 连接失败",
                        details={"endpoint": url, "error": str(exc)},
                    ) from exc
            else:
                duration_ms = (time.perf_counter() - started) * 1000
                status = response.status_code
                observe_fuseki_response(operation, status, duration_ms / 1000)
                if status < 400:
                    self.breaker.record_success(operation)
                    return response, duration_ms
                reason = "server_error" if status >= 500 else _STATUS_REASONS.get(status, "client_error")
                observe_fuseki_failure(operation, reason)
                if status >= 500 or status in self._retry_codes:
                    self.breaker.record_failure(operation, reason, trace_id)
                if last_attempt or status not in self._retry_codes:
                    raise ExternalServiceError(
                        _STATUS_ERROR_CODES.get(status, ErrorCode.FUSEKI_QUERY_ERROR),
                        "Fuseki 请求失败",
                        details={"status": status, "message": response.text[:1024], "reason": reason},
                    )
            await self._sleep(backoff, float(self._retry_policy["jitter_seconds"] or 0.0))
            backoff *= float(self._retry_policy["backoff_multiplier"])

    def _resolve_timeout(self, timeout: int | None) -> httpx.Timeout:
        effective = self._default_timeout if timeout is None else max(1, min(timeout, self._max_timeout))
        return httpx.Timeout(effective, connect=effective)

    async def _sleep(self, backoff: float, jitter: float) -> None:
        await asyncio.sleep(backoff + random.uniform(0, jitter))
