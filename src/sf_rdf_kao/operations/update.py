"""游离实例的回写。"""
from __future__ import annotations

from typing import Optional, TypeVar

from rdflib import URIRef

from sf_rdf_kao.common.exceptions import MappingError
from sf_rdf_kao.connection.repository import RDFConnection
from sf_rdf_kao.context import ContextSet
from sf_rdf_kao.mapping import Entity, EntityMapper

from .sparql import delete_subject, insert_data

E = TypeVar("E", bound=Entity)


class UpdateOperations:
    def __init__(self, mapper: Optional[EntityMapper] = None) -> None:
        self._mapper = mapper or EntityMapper()

    async def update_detached_instance(
        self,
        instance: E,
        entity_type: type[E],
        connection: RDFConnection,
        contexts: ContextSet,
    ) -> E:
        """按 ``entity_type`` 的映射用实例字段值替换上下文中对应谓词的语句，返回新的受管副本。

        未映射的谓词以及其他 ``rdf:type`` 语句保持不变。

        异常：
            MappingError：实例不是 ``entity_type`` 的实例。
        """

        if not isinstance(instance, entity_type):
            raise MappingError(
                f"实例类型 {type(instance).__name__} 与绑定类型 {entity_type.__name__} 不符",
                details={"uri": getattr(instance, "uri", None), "entityType": entity_type.__name__},
            )
        predicates = [spec.predicate for spec in entity_type.properties().values()]
        removal = delete_subject(URIRef(instance.uri), contexts, predicates=predicates)
        if removal:
            await connection.update(removal)
        await connection.update(insert_data(self._mapper.to_statements(instance, entity_type), contexts))
        return instance.model_copy(deep=True)
