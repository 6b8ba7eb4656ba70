"""SPARQLQueryRunner 测试：五种查询方式的结果形态与失败默认值。"""
from __future__ import annotations

import pytest

from sf_rdf_kao.common.exceptions import ErrorCode, RepositoryConnectionError
from sf_rdf_kao.connection.memory import MemoryRepository
from sf_rdf_kao.context import ContextSet
from sf_rdf_kao.query import QueryResultIterator, QueryRunner, SPARQLQueryRunner

EX = "http://ex.org/"
G1 = ContextSet.from_iterable([f"{EX}g1"])


class _DownRepository:
    async def get_connection(self, *, trace_id: str | None = None):
        raise RepositoryConnectionError(ErrorCode.REPOSITORY_UNAVAILABLE, "down")


@pytest.fixture()
def seeded_repository(memory_repository: MemoryRepository) -> MemoryRepository:
    memory_repository.apply(
        [
            f'INSERT DATA {{ GRAPH <{EX}g1> {{ <{EX}a> <{EX}name> "A" . <{EX}b> <{EX}name> "B" }} }}',
            f'INSERT DATA {{ GRAPH <{EX}g2> {{ <{EX}c> <{EX}name> "C" }} }}',
        ]
    )
    return memory_repository


def test_runner_satisfies_protocol(memory_repository: MemoryRepository) -> None:
    assert isinstance(SPARQLQueryRunner(memory_repository), QueryRunner)


@pytest.mark.asyncio
async def test_single_result_single_variable(seeded_repository: MemoryRepository) -> None:
    runner = SPARQLQueryRunner(seeded_repository)

    value = await runner.execute_query_as_single_result(
        f"SELECT ?name WHERE {{ ?s <{EX}name> ?name }} ORDER BY ?name", G1
    )

    assert value == "A"
    assert runner.last_result is not None and runner.last_result.ok


@pytest.mark.asyncio
async def test_single_result_multiple_variables_and_empty(seeded_repository: MemoryRepository) -> None:
    runner = SPARQLQueryRunner(seeded_repository)

    row = await runner.execute_query_as_single_result(
        f"SELECT ?s ?name WHERE {{ ?s <{EX}name> ?name }} ORDER BY ?s", G1
    )
    missing = await runner.execute_query_as_single_result(f"SELECT ?s WHERE {{ ?s <{EX}missing> ?o }}", G1)

    assert row["s"]["value"] == f"{EX}a"
    assert row["name"]["value"] == "A"
    assert missing is None


@pytest.mark.asyncio
async def test_list_scoped_to_contexts(seeded_repository: MemoryRepository) -> None:
    runner = SPARQLQueryRunner(seeded_repository)

    scoped = await runner.execute_query_as_list(f"SELECT ?s WHERE {{ ?s <{EX}name> ?o }} ORDER BY ?s", G1)
    everything = await runner.execute_query_as_list(
        f"SELECT ?s WHERE {{ ?s <{EX}name> ?o }} ORDER BY ?s", ContextSet.empty()
    )

    assert scoped == [f"{EX}a", f"{EX}b"]
    assert everything == [f"{EX}a", f"{EX}b", f"{EX}c"]


@pytest.mark.asyncio
async def test_iterator_is_lazy_and_not_restartable(seeded_repository: MemoryRepository) -> None:
    runner = SPARQLQueryRunner(seeded_repository)

    iterator = runner.execute_query_as_iterator(f"SELECT ?s WHERE {{ ?s <{EX}name> ?o }} ORDER BY ?s", G1)
    assert isinstance(iterator, QueryResultIterator)
    assert iterator.started is False
    assert runner.last_result is None

    first = [item async for item in iterator]
    second = [item async for item in iterator]

    assert first == [f"{EX}a", f"{EX}b"]
    assert second == []
    assert iterator.started is True


@pytest.mark.asyncio
async def test_boolean_query(seeded_repository: MemoryRepository) -> None:
    runner = SPARQLQueryRunner(seeded_repository)

    assert await runner.execute_boolean_query(f"ASK {{ <{EX}c> ?p ?o }}") is True
    assert await runner.execute_boolean_query(f"ASK FROM <{EX}g1> {{ <{EX}c> ?p ?o }}") is False


@pytest.mark.asyncio
async def test_update_query_commits(memory_repository: MemoryRepository) -> None:
    runner = SPARQLQueryRunner(memory_repository)

    ok = await runner.execute_update_query(f"INSERT DATA {{ GRAPH <{EX}g1> {{ <{EX}a> <{EX}p> <{EX}b> }} }}")
    failed = await runner.execute_update_query("DEFINITELY NOT SPARQL")

    assert ok is True
    assert failed is False
    assert runner.last_result.status == "commit_error"
    assert memory_repository.quad_count() == 1


@pytest.mark.asyncio
async def test_store_failures_yield_defaults() -> None:
    runner = SPARQLQueryRunner(_DownRepository())

    assert await runner.execute_query_as_single_result("SELECT ?s WHERE { ?s ?p ?o }", G1) is None
    assert await runner.execute_query_as_list("SELECT ?s WHERE { ?s ?p ?o }", G1) == []
    assert [item async for item in runner.execute_query_as_iterator("SELECT ?s WHERE { ?s ?p ?o }", G1)] == []
    assert await runner.execute_boolean_query("ASK { ?s ?p ?o }") is False
    assert await runner.execute_update_query("CLEAR ALL") is False
    assert runner.last_result.status == "connection_error"


@pytest.mark.asyncio
async def test_malformed_query_yields_default(memory_repository: MemoryRepository) -> None:
    runner = SPARQLQueryRunner(memory_repository)

    assert await runner.execute_query_as_list("SELECT WHERE {", ContextSet.empty()) == []
    assert runner.last_result.status == "operation_error"
