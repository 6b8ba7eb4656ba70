"""进程级仓库获取入口。

首次调用 :meth:`RepositoryFactory.get_repository` 时按配置创建仓库并缓存，进程退出前
无需显式释放。KAO 也可以直接注入仓库而不经过这里。
"""
from __future__ import annotations

from threading import Lock
from typing import ClassVar, Optional

from sf_rdf_kao.common.config import ConfigManager, Settings
from sf_rdf_kao.common.logging import LoggerFactory

from .fuseki import FusekiRepository
from .memory import MemoryRepository
from .pool import PooledRepository
from .repository import Repository


class RepositoryFactory:
    """按 ``rdf.backend`` 配置惰性创建进程共享仓库。"""

    _repository: ClassVar[Optional[Repository]] = None
    _lock: ClassVar[Lock] = Lock()

    @classmethod
    def get_repository(cls, settings: Optional[Settings] = None) -> Repository:
        with cls._lock:
            if cls._repository is None:
                cls._repository = cls.create(settings or ConfigManager.current().settings)
            return cls._repository

    @classmethod
    def set_repository(cls, repository: Optional[Repository]) -> None:
        """替换（或以 ``None`` 清除）进程共享仓库。"""

        with cls._lock:
            cls._repository = repository

    @staticmethod
    def create(settings: Settings) -> Repository:
        """根据配置构造新仓库，不影响共享实例。"""

        rdf = settings.rdf
        repository: Repository
        if rdf.backend == "fuseki":
            repository = FusekiRepository(settings=settings)
        else:
            repository = MemoryRepository()
        if rdf.pool_size > 0:
            repository = PooledRepository(repository, max_size=rdf.pool_size, acquire_timeout=rdf.pool_acquire_timeout)
        LoggerFactory.create_default_logger(__name__).info(
            "已创建仓库 backend=%s pool_size=%s", rdf.backend, rdf.pool_size
        )
        return repository
