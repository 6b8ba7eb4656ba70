"""连接池包装测试：并发上限、等待超时与名额归还。"""
from __future__ import annotations

import asyncio

import pytest

from sf_rdf_kao.common.exceptions import ErrorCode, RepositoryConnectionError
from sf_rdf_kao.connection.memory import MemoryRepository
from sf_rdf_kao.connection.pool import PooledRepository


class _FailingRepository:
    async def get_connection(self, *, trace_id: str | None = None):
        raise RepositoryConnectionError(ErrorCode.REPOSITORY_UNAVAILABLE, "down")


@pytest.mark.asyncio
async def test_pool_exhaustion_raises_after_timeout(memory_repository: MemoryRepository) -> None:
    pool = PooledRepository(memory_repository, max_size=1, acquire_timeout=0.05)
    first = await pool.get_connection()

    with pytest.raises(RepositoryConnectionError) as exc_info:
        await pool.get_connection()

    assert exc_info.value.code == ErrorCode.REPOSITORY_EXHAUSTED
    assert pool.stats.total_timeouts == 1
    await first.close()


@pytest.mark.asyncio
async def test_close_returns_slot_once(memory_repository: MemoryRepository) -> None:
    pool = PooledRepository(memory_repository, max_size=1, acquire_timeout=0.05)
    connection = await pool.get_connection()
    assert pool.stats.checked_out == 1

    await connection.close()
    await connection.close()

    assert pool.stats.checked_out == 0
    second = await pool.get_connection()
    assert pool.stats.total_checkouts == 2
    await second.close()


@pytest.mark.asyncio
async def test_waiter_acquires_after_release(memory_repository: MemoryRepository) -> None:
    pool = PooledRepository(memory_repository, max_size=1, acquire_timeout=1.0)
    holder = await pool.get_connection()

    waiter = asyncio.create_task(pool.get_connection())
    await asyncio.sleep(0)
    assert not waiter.done()

    await holder.close()
    acquired = await asyncio.wait_for(waiter, timeout=1.0)
    assert acquired.closed is False
    await acquired.close()


@pytest.mark.asyncio
async def test_inner_failure_releases_slot() -> None:
    pool = PooledRepository(_FailingRepository(), max_size=1, acquire_timeout=0.05)

    for _ in range(2):
        with pytest.raises(RepositoryConnectionError) as exc_info:
            await pool.get_connection()
        assert exc_info.value.code == ErrorCode.REPOSITORY_UNAVAILABLE
    assert pool.stats.checked_out == 0


@pytest.mark.asyncio
async def test_pooled_connection_delegates(memory_repository: MemoryRepository) -> None:
    pool = PooledRepository(memory_repository, max_size=2)
    connection = await pool.get_connection()
    await connection.set_auto_commit(False)

    await connection.update("INSERT DATA { <http://ex.org/a> <http://ex.org/p> <http://ex.org/b> }")
    assert memory_repository.quad_count() == 0
    await connection.commit()

    assert connection.auto_commit is False
    assert await connection.ask("ASK { <http://ex.org/a> ?p ?o }") is True
    await connection.close()


def test_pool_requires_positive_size(memory_repository: MemoryRepository) -> None:
    with pytest.raises(ValueError):
        PooledRepository(memory_repository, max_size=0)
