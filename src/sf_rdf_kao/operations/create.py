"""实例创建。"""
from __future__ import annotations

import uuid
from typing import Optional, TypeVar

from pydantic import ValidationError
from rdflib import RDF

from sf_rdf_kao.common.config import ConfigManager
from sf_rdf_kao.common.exceptions import ErrorCode, MappingError, OperationError
from sf_rdf_kao.connection.repository import RDFConnection
from sf_rdf_kao.context import ContextSet
from sf_rdf_kao.mapping import Entity, EntityMapper

from .sparql import SPARQLSanitizer, insert_data, scoped_pattern

E = TypeVar("E", bound=Entity)


class CreateOperations:
    """在给定上下文中写入新实例的 ``rdf:type`` 及默认字段值。"""

    def __init__(self, mapper: Optional[EntityMapper] = None, *, max_attempts: Optional[int] = None) -> None:
        self._mapper = mapper or EntityMapper()
        self._max_attempts = max_attempts or ConfigManager.current().settings.kao.unique_id_max_attempts

    async def create(
        self,
        base_uri: str,
        instance_name: str,
        entity_type: type[E],
        connection: RDFConnection,
        contexts: ContextSet,
    ) -> E:
        """在 ``base_uri + instance_name`` 处创建实例。"""

        return await self.create_with_uri(f"{base_uri}{instance_name}", entity_type, connection, contexts)

    async def create_with_uri(
        self,
        uri: str,
        entity_type: type[E],
        connection: RDFConnection,
        contexts: ContextSet,
    ) -> E:
        SPARQLSanitizer.escape_uri(uri)
        try:
            instance = entity_type(uri=uri)
        except ValidationError as exc:
            raise MappingError(
                f"{entity_type.__name__} 存在无默认值的必填字段，无法直接创建",
                details={"uri": uri, "errors": exc.errors(include_url=False)},
            ) from exc
        await connection.update(insert_data(self._mapper.to_statements(instance), contexts))
        return instance

    async def create_with_unique_id(
        self,
        base_uri: str,
        instance_prefix: str,
        entity_type: type[E],
        connection: RDFConnection,
        contexts: ContextSet,
    ) -> E:
        """以 ``base_uri + prefix + uuid`` 创建实例，确保与同类型已有实例不冲突。

        异常：
            OperationError：连续 ``max_attempts`` 次生成的 URI 均已被占用。
        """

        for _ in range(self._max_attempts):
            uri = f"{base_uri}{instance_prefix}{uuid.uuid4().hex}"
            if not await self._exists(uri, entity_type, connection):
                return await self.create_with_uri(uri, entity_type, connection, contexts)
        raise OperationError(
            ErrorCode.OPERATION_FAILED,
            "无法生成唯一实例 URI",
            details={"baseUri": base_uri, "prefix": instance_prefix, "attempts": self._max_attempts},
        )

    @staticmethod
    async def _exists(uri: str, entity_type: type[Entity], connection: RDFConnection) -> bool:
        # 唯一性针对整个存储中的同类型实例，与写入上下文无关
        subject = SPARQLSanitizer.iri(uri)
        type_iri = SPARQLSanitizer.iri(entity_type.type_uri())
        pattern = scoped_pattern(f"{subject} <{RDF.type}> {type_iri}", ContextSet.empty())
        return await connection.ask(f"ASK {{ {pattern} }}")
