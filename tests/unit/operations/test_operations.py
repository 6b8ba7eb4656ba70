"""操作助手测试：在内存仓库上验证创建、读取、更新与删除的语句级行为。"""
from __future__ import annotations

import pytest
from rdflib import RDF, Literal, URIRef

from sf_rdf_kao.common.exceptions import MappingError, OperationError
from sf_rdf_kao.connection.memory import MemoryRepository
from sf_rdf_kao.context import ContextSet
from sf_rdf_kao.mapping import Entity, rdf_field
from sf_rdf_kao.operations import CreateOperations, RemoveOperations, RetrieveOperations, UpdateOperations

EX = "http://ex.org/"
G1 = ContextSet.from_iterable([f"{EX}g1"])
G2 = ContextSet.from_iterable([f"{EX}g2"])


class Person(Entity):
    rdf_type = f"{EX}Person"
    namespace = EX

    name: str | None = None
    age: int = 0
    knows: list[str] = rdf_field(iri=True, default_factory=list)


class Required(Entity):
    rdf_type = f"{EX}Required"
    namespace = EX

    name: str


@pytest.mark.asyncio
async def test_create_writes_type_and_defaults_into_context(memory_repository: MemoryRepository) -> None:
    connection = await memory_repository.get_connection()

    bob = await CreateOperations().create(EX, "Bob", Person, connection, G1)

    assert bob.uri == f"{EX}Bob"
    graph = memory_repository.dataset.graph(URIRef(f"{EX}g1"))
    assert (URIRef(f"{EX}Bob"), RDF.type, URIRef(f"{EX}Person")) in graph
    assert (URIRef(f"{EX}Bob"), URIRef(f"{EX}age"), Literal(0)) in graph
    assert len(memory_repository.dataset.graph(URIRef(f"{EX}g2"))) == 0


@pytest.mark.asyncio
async def test_create_rejects_invalid_uri(memory_repository: MemoryRepository) -> None:
    connection = await memory_repository.get_connection()

    with pytest.raises(ValueError):
        await CreateOperations().create_with_uri("Bob", Person, connection, G1)
    assert memory_repository.quad_count() == 0


@pytest.mark.asyncio
async def test_create_requires_defaults_for_all_fields(memory_repository: MemoryRepository) -> None:
    connection = await memory_repository.get_connection()

    with pytest.raises(MappingError):
        await CreateOperations().create(EX, "Nameless", Required, connection, G1)


@pytest.mark.asyncio
async def test_create_with_unique_id_retries_on_collision(
    memory_repository: MemoryRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    """生成的 URI 与同类型已有实例冲突时重新生成。"""

    class _FakeUUID:
        def __init__(self, hex_value: str) -> None:
            self.hex = hex_value

    values = iter([_FakeUUID("taken"), _FakeUUID("free")])
    monkeypatch.setattr("sf_rdf_kao.operations.create.uuid.uuid4", lambda: next(values))

    connection = await memory_repository.get_connection()
    operations = CreateOperations()
    await operations.create_with_uri(f"{EX}person-taken", Person, connection, G2)

    created = await operations.create_with_unique_id(EX, "person-", Person, connection, G1)

    assert created.uri == f"{EX}person-free"


@pytest.mark.asyncio
async def test_create_with_unique_id_gives_up_after_max_attempts(
    memory_repository: MemoryRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    class _FakeUUID:
        hex = "same"

    monkeypatch.setattr("sf_rdf_kao.operations.create.uuid.uuid4", lambda: _FakeUUID())
    connection = await memory_repository.get_connection()
    operations = CreateOperations(max_attempts=2)
    await operations.create_with_uri(f"{EX}p-same", Person, connection, G1)

    with pytest.raises(OperationError):
        await operations.create_with_unique_id(EX, "p-", Person, connection, G1)


@pytest.mark.asyncio
async def test_retrieve_instance_is_scoped_to_contexts(memory_repository: MemoryRepository) -> None:
    connection = await memory_repository.get_connection()
    await CreateOperations().create(EX, "Bob", Person, connection, G1)
    retrieve = RetrieveOperations()

    found = await retrieve.retrieve_instance(EX, "Bob", Person, connection, G1)
    missing = await retrieve.retrieve_instance(EX, "Bob", Person, connection, G2)
    anywhere = await retrieve.retrieve_instance(EX, "Bob", Person, connection, ContextSet.empty())

    assert found == Person(uri=f"{EX}Bob")
    assert missing is None
    assert anywhere == found


@pytest.mark.asyncio
async def test_retrieve_all_instances_sorted_by_uri(memory_repository: MemoryRepository) -> None:
    connection = await memory_repository.get_connection()
    create = CreateOperations()
    await create.create(EX, "Carol", Person, connection, G1)
    await create.create(EX, "Alice", Person, connection, G1)
    await create.create(EX, "Dave", Person, connection, G2)
    memory_repository.apply([f"INSERT DATA {{ GRAPH <{EX}g1> {{ <{EX}Thing> a <{EX}Other> }} }}"])

    people = await RetrieveOperations().retrieve_all_instances(Person, connection, G1)

    assert [person.uri for person in people] == [f"{EX}Alice", f"{EX}Carol"]


@pytest.mark.asyncio
async def test_update_replaces_mapped_predicates_only(memory_repository: MemoryRepository) -> None:
    connection = await memory_repository.get_connection()
    bob = await CreateOperations().create(EX, "Bob", Person, connection, G1)
    memory_repository.apply([f'INSERT DATA {{ GRAPH <{EX}g1> {{ <{EX}Bob> <{EX}nickname> "bobby" }} }}'])

    detached = bob.model_copy(update={"name": "Robert", "age": 43, "knows": [f"{EX}Alice"]})
    managed = await UpdateOperations().update_detached_instance(detached, Person, connection, G1)

    assert managed == detached
    assert managed is not detached
    graph = memory_repository.dataset.graph(URIRef(f"{EX}g1"))
    subject = URIRef(f"{EX}Bob")
    assert set(graph.objects(subject, URIRef(f"{EX}age"))) == {Literal(43)}
    assert set(graph.objects(subject, URIRef(f"{EX}name"))) == {Literal("Robert")}
    assert set(graph.objects(subject, URIRef(f"{EX}knows"))) == {URIRef(f"{EX}Alice")}
    assert set(graph.objects(subject, URIRef(f"{EX}nickname"))) == {Literal("bobby")}


@pytest.mark.asyncio
async def test_update_rejects_instance_of_other_type(memory_repository: MemoryRepository) -> None:
    connection = await memory_repository.get_connection()
    stray = Required(uri=f"{EX}Bob", name="Robert")

    with pytest.raises(MappingError) as info:
        await UpdateOperations().update_detached_instance(stray, Person, connection, G1)

    assert info.value.details["entityType"] == "Person"
    assert memory_repository.quad_count() == 0


@pytest.mark.asyncio
async def test_remove_deletes_subject_only_in_contexts(memory_repository: MemoryRepository) -> None:
    connection = await memory_repository.get_connection()
    create = CreateOperations()
    await create.create(EX, "Bob", Person, connection, G1)
    await create.create(EX, "Bob", Person, connection, G2)

    await RemoveOperations().remove(f"{EX}Bob", connection, G1)

    assert len(memory_repository.dataset.graph(URIRef(f"{EX}g1"))) == 0
    assert len(memory_repository.dataset.graph(URIRef(f"{EX}g2"))) > 0


@pytest.mark.asyncio
async def test_remove_without_contexts_covers_whole_store(memory_repository: MemoryRepository) -> None:
    connection = await memory_repository.get_connection()
    create = CreateOperations()
    await create.create(EX, "Bob", Person, connection, G1)
    await create.create(EX, "Bob", Person, connection, ContextSet.empty())

    await RemoveOperations().remove(f"{EX}Bob", connection, ContextSet.empty())

    assert memory_repository.quad_count() == 0


@pytest.mark.asyncio
async def test_remove_missing_subject_is_noop(memory_repository: MemoryRepository) -> None:
    connection = await memory_repository.get_connection()
    await CreateOperations().create(EX, "Alice", Person, connection, G1)
    before = memory_repository.quad_count()

    await RemoveOperations().remove(f"{EX}Nobody", connection, G1)

    assert memory_repository.quad_count() == before
