"""基于 :class:`FusekiClient` 的仓库实现。"""
from __future__ import annotations

from typing import Any, Optional

from sf_rdf_kao.common.config import ConfigManager, Settings
from sf_rdf_kao.common.exceptions import ErrorCode, RepositoryConnectionError
from sf_rdf_kao.common.logging import LoggerFactory
from sf_rdf_kao.context import ContextSet

from .client import FusekiClient, RDFClient
from .repository import BufferedConnection


class FusekiConnection(BufferedConnection):
    """通过 HTTP 访问 Fuseki 的连接；缓冲的更新在提交时合并为一个请求。"""

    def __init__(self, client: RDFClient, *, trace_id: str | None = None) -> None:
        super().__init__(trace_id=trace_id)
        self._client = client

    async def _select(self, query: str, contexts: ContextSet) -> dict[str, Any]:
        return await self._client.select(
            query, default_graph_uris=list(contexts) or None, timeout=None, trace_id=self.trace_id
        )

    async def _ask(self, query: str, contexts: ContextSet) -> bool:
        raw = await self._client.ask(
            query, default_graph_uris=list(contexts) or None, timeout=None, trace_id=self.trace_id
        )
        return bool(raw.get("boolean", False))

    async def _apply_updates(self, statements: list[str]) -> None:
        await self._client.update(" ;\n".join(statements), timeout=None, trace_id=self.trace_id)


class FusekiRepository:
    """Fuseki 仓库：所有连接共享一个 HTTP 客户端（及其熔断状态）。"""

    def __init__(self, client: Optional[RDFClient] = None, *, settings: Optional[Settings] = None) -> None:
        """初始化仓库。

        参数：
            client：可选的 RDF 客户端，缺省时根据配置创建 :class:`FusekiClient`。
            settings：可选的配置快照，缺省读取 ``ConfigManager.current().settings``。
        """

        self._settings = settings or ConfigManager.current().settings
        self._client = client or self._create_client()
        self._logger = LoggerFactory.create_default_logger(__name__)

    @property
    def client(self) -> RDFClient:
        return self._client

    async def get_connection(self, *, trace_id: str | None = None) -> FusekiConnection:
        """返回新连接；客户端不健康（如熔断打开）时抛出 :class:`RepositoryConnectionError`。"""

        try:
            health = await self._client.health()
        except Exception as exc:  # noqa: BLE001
            raise RepositoryConnectionError(
                ErrorCode.REPOSITORY_UNAVAILABLE,
                "Fuseki 健康检查失败",
                details={"error": str(exc)},
            ) from exc
        if not health.get("ok", False):
            self._logger.warning("Fuseki 仓库不可用: %s", health)
            raise RepositoryConnectionError(
                ErrorCode.REPOSITORY_UNAVAILABLE,
                "Fuseki 仓库不可用",
                details={"health": health},
            )
        return FusekiConnection(self._client, trace_id=trace_id)

    def _create_client(self) -> FusekiClient:
        rdf = self._settings.rdf
        security = self._settings.security
        auth_tuple: tuple[str, str] | None = None
        if rdf.auth.username and rdf.auth.password:
            auth_tuple = (rdf.auth.username, rdf.auth.password)
        retry_policy = {
            "max_attempts": rdf.retries.max_attempts,
            "backoff_seconds": rdf.retries.backoff_seconds,
            "backoff_multiplier": rdf.retries.backoff_multiplier,
            "jitter_seconds": rdf.retries.jitter_seconds or 0.0,
        }
        breaker_policy = rdf.circuit_breaker.model_dump(by_alias=True)
        return FusekiClient(
            endpoint=str(rdf.endpoint),
            dataset=rdf.dataset,
            auth=auth_tuple,
            trace_header=security.trace_header,
            default_timeout=rdf.timeout.default,
            max_timeout=rdf.timeout.max,
            retry_policy=retry_policy,
            circuit_breaker=breaker_policy,
        )
