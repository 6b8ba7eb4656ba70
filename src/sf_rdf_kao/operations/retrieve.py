"""实例读取。"""
from __future__ import annotations

from typing import Optional, TypeVar

from rdflib import RDF

from sf_rdf_kao.connection.repository import RDFConnection
from sf_rdf_kao.context import ContextSet
from sf_rdf_kao.converter import ResultMapper
from sf_rdf_kao.mapping import Entity, EntityMapper

from .sparql import SPARQLSanitizer, scoped_pattern

E = TypeVar("E", bound=Entity)


class RetrieveOperations:
    """按 URI 或按类型从上下文中重建实例。"""

    def __init__(self, mapper: Optional[EntityMapper] = None, result_mapper: Optional[ResultMapper] = None) -> None:
        self._mapper = mapper or EntityMapper()
        self._result_mapper = result_mapper or ResultMapper()

    async def retrieve_instance(
        self,
        base_uri: str,
        instance_name: str,
        entity_type: type[E],
        connection: RDFConnection,
        contexts: ContextSet,
    ) -> E | None:
        return await self.retrieve_instance_at(f"{base_uri}{instance_name}", entity_type, connection, contexts)

    async def retrieve_instance_at(
        self,
        uri: str,
        entity_type: type[E],
        connection: RDFConnection,
        contexts: ContextSet,
    ) -> E | None:
        """读取 ``uri`` 处的实例；上下文内没有其 ``rdf:type`` 语句时返回 ``None``。"""

        subject = SPARQLSanitizer.iri(uri)
        query = (
            "SELECT DISTINCT ?p ?o WHERE {\n"
            f"  {scoped_pattern(f'{subject} ?p ?o', contexts)}\n"
            "} ORDER BY ?p"
        )
        rows = self._result_mapper.map_result(await connection.select(query))
        return self._mapper.from_rows(entity_type, uri, rows)

    async def retrieve_all_instances(
        self,
        entity_type: type[E],
        connection: RDFConnection,
        contexts: ContextSet,
    ) -> list[E]:
        """读取上下文内所有该类型实例，按 URI 排序。"""

        type_iri = SPARQLSanitizer.iri(entity_type.type_uri())
        query = (
            "SELECT DISTINCT ?s ?p ?o WHERE {\n"
            f"  {scoped_pattern(f'?s <{RDF.type}> {type_iri}', contexts, graph_var='?tg')}\n"
            f"  {scoped_pattern('?s ?p ?o', contexts, graph_var='?g')}\n"
            "} ORDER BY ?s ?p"
        )
        rows = self._result_mapper.map_result(await connection.select(query))
        instances: list[E] = []
        for uri, subject_rows in self._mapper.group_by_subject(rows).items():
            instance = self._mapper.from_rows(entity_type, uri, subject_rows)
            if instance is not None:
                instances.append(instance)
        return instances
