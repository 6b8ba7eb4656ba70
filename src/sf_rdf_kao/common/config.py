"""配置加载与全局访问。

配置以 Pydantic v2 模型描述，默认值即可在本地内存仓库下直接运行；可以通过 YAML
文件覆盖任意字段。加载顺序：

1. ``ConfigManager.load(override_path=...)`` 显式传入的 YAML 路径；
2. 环境变量 ``SF_RDF_KAO_CONFIG`` 指向的 YAML 路径；
3. 模型内置默认值。

示例 YAML::

    rdf:
      backend: fuseki
      endpoint: http://localhost:3030
      dataset: kao
      circuit_breaker:
        failureThreshold: 5
"""
from __future__ import annotations

import os
from pathlib import Path
from threading import Lock
from typing import Any, ClassVar, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

CONFIG_ENV_VAR = "SF_RDF_KAO_CONFIG"


class AppSettings(BaseModel):
    """应用级配置。"""

    name: str = "sf-rdf-kao"
    env: Literal["dev", "test", "prod"] = "dev"


class AuthSettings(BaseModel):
    """Fuseki Basic Auth 凭据，均为空表示匿名访问。"""

    username: str | None = None
    password: str | None = None


class TimeoutSettings(BaseModel):
    """请求超时（秒）。"""

    default: int = Field(default=30, ge=1)
    max: int = Field(default=120, ge=1)


class RetrySettings(BaseModel):
    """传输层重试策略；``max_attempts=1`` 表示单次尝试。"""

    max_attempts: int = Field(default=1, ge=1)
    backoff_seconds: float = Field(default=0.5, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)
    jitter_seconds: float | None = Field(default=0.1, ge=0)


class CircuitBreakerSettings(BaseModel):
    """熔断器配置，YAML 中使用 camelCase 键。"""

    model_config = ConfigDict(populate_by_name=True)

    failure_threshold: int = Field(default=5, ge=1, alias="failureThreshold")
    recovery_timeout: float = Field(default=30.0, ge=0, alias="recoveryTimeout")
    record_timeout_only: bool = Field(default=False, alias="recordTimeoutOnly")


class RDFSettings(BaseModel):
    """三元组存储连接配置。"""

    backend: Literal["fuseki", "memory"] = "memory"
    endpoint: str = "http://localhost:3030"
    dataset: str = "kao"
    auth: AuthSettings = Field(default_factory=AuthSettings)
    timeout: TimeoutSettings = Field(default_factory=TimeoutSettings)
    retries: RetrySettings = Field(default_factory=RetrySettings)
    circuit_breaker: CircuitBreakerSettings = Field(default_factory=CircuitBreakerSettings)
    pool_size: int = Field(default=0, ge=0, description="0 表示不启用连接池")
    pool_acquire_timeout: float = Field(default=10.0, gt=0)


class SecuritySettings(BaseModel):
    """安全相关配置。"""

    trace_header: str = "X-Trace-Id"


class KAOSettings(BaseModel):
    """KAO 行为配置。"""

    unique_id_max_attempts: int = Field(default=5, ge=1)


class AuditSettings(BaseModel):
    """审计落库配置。"""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    dsn: str | None = None
    db_schema: str = Field(default="public", alias="schema")


class LoggingSettings(BaseModel):
    """日志输出配置。"""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s [%(trace_id)s] %(message)s"


class Settings(BaseModel):
    """全局配置根模型。"""

    app: AppSettings = Field(default_factory=AppSettings)
    rdf: RDFSettings = Field(default_factory=RDFSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    kao: KAOSettings = Field(default_factory=KAOSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class ConfigManager:
    """进程级配置持有者。

    ``current()`` 在首次调用时自动加载，后续返回同一实例；测试中可以随时调用
    ``load()`` 重新加载。
    """

    _current: ClassVar[Optional["ConfigManager"]] = None
    _lock: ClassVar[Lock] = Lock()

    def __init__(self, settings: Settings, *, source: str | None = None) -> None:
        self.settings = settings
        self.source = source

    @classmethod
    def load(cls, override_path: str | None = None) -> "ConfigManager":
        """加载配置并设置为当前实例。

        参数：
            override_path：YAML 配置文件路径，例如 ``"tests/fixtures/testing.yaml"``。

        异常：
            FileNotFoundError：显式指定的文件不存在。
        """

        path = override_path or os.environ.get(CONFIG_ENV_VAR)
        data: dict[str, Any] = {}
        if path:
            data = cls._read_yaml(Path(path))
        manager = cls(Settings.model_validate(data), source=path)
        with cls._lock:
            cls._current = manager
        return manager

    @classmethod
    def current(cls) -> "ConfigManager":
        """返回当前配置，未加载时按默认规则加载。"""

        with cls._lock:
            manager = cls._current
        if manager is None:
            manager = cls.load()
        return manager

    @classmethod
    def override(cls, settings: Settings) -> "ConfigManager":
        """直接以给定 Settings 替换当前配置（测试/嵌入场景）。"""

        manager = cls(settings, source=None)
        with cls._lock:
            cls._current = manager
        return manager

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"配置文件顶层必须是映射: {path}")
        return loaded
