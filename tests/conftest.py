"""测试公共配置：每个用例使用默认配置与全新的进程级仓库。"""
from __future__ import annotations

from typing import Iterator

import pytest

from sf_rdf_kao.common.config import ConfigManager, Settings
from sf_rdf_kao.connection.factory import RepositoryFactory
from sf_rdf_kao.connection.memory import MemoryRepository


@pytest.fixture(autouse=True)
def _default_settings() -> Iterator[Settings]:
    """以内置默认值（内存仓库、关闭审计）运行，并在用例结束后清理共享仓库。"""

    manager = ConfigManager.override(Settings())
    RepositoryFactory.set_repository(None)
    yield manager.settings
    RepositoryFactory.set_repository(None)


@pytest.fixture()
def memory_repository() -> MemoryRepository:
    return MemoryRepository()
