"""实体与 RDF 语句之间的转换。"""
from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from pydantic import ValidationError
from rdflib import RDF, Literal, URIRef
from rdflib.term import Node

from sf_rdf_kao.common.exceptions import MappingError

from .entity import Entity, PropertySpec

Statement = tuple[URIRef, URIRef, Node]

_DATETIME_TYPE = "http://www.w3.org/2001/XMLSchema#dateTime"


class EntityMapper:
    """把实体展开为语句，或由 ``?p ?o`` 行重建实体。"""

    def to_statements(self, instance: Entity, entity_type: type[Entity] | None = None) -> list[Statement]:
        """返回 ``rdf:type`` 语句及所有非空字段的语句，按 ``entity_type``（缺省为实例自身类型）映射。"""

        entity_type = entity_type or type(instance)
        subject = URIRef(instance.uri)
        statements: list[Statement] = [(subject, RDF.type, URIRef(entity_type.type_uri()))]
        for spec in entity_type.properties().values():
            predicate = URIRef(spec.predicate)
            for value in self._iter_values(getattr(instance, spec.name), spec):
                statements.append((subject, predicate, self._to_node(value, spec)))
        return statements

    def from_rows(self, entity_type: type[Entity], uri: str, rows: Iterable[dict[str, Any]]) -> Entity | None:
        """由 ``ResultMapper`` 格式的 ``p``/``o`` 行重建实体。

        没有 ``rdf:type <entity_type>`` 语句时视为实例不存在，返回 ``None``。

        异常：
            MappingError：取值无法通过实体模型校验。
        """

        type_uri = entity_type.type_uri()
        specs = entity_type.properties()
        by_predicate = {spec.predicate: spec for spec in specs.values()}
        typed = False
        collected: dict[str, list[Any]] = {}
        for row in rows:
            predicate_cell, object_cell = row.get("p"), row.get("o")
            if predicate_cell is None or object_cell is None:
                continue
            predicate = predicate_cell.get("raw")
            if predicate == str(RDF.type):
                typed = typed or object_cell.get("raw") == type_uri
                continue
            spec = by_predicate.get(predicate)
            if spec is None:
                continue
            value = self._cell_value(object_cell)
            bucket = collected.setdefault(spec.name, [])
            if value not in bucket:
                bucket.append(value)
        if not typed:
            return None

        payload: dict[str, Any] = {"uri": uri}
        for name, values in collected.items():
            payload[name] = values if specs[name].multi else values[0]
        try:
            return entity_type.model_validate(payload)
        except ValidationError as exc:
            raise MappingError(
                f"无法将 <{uri}> 映射为 {entity_type.__name__}",
                details={"uri": uri, "errors": exc.errors(include_url=False)},
            ) from exc

    def group_by_subject(self, rows: Iterable[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
        """按 ``s`` 列分组，保持主语首次出现的顺序。"""

        grouped: dict[str, list[dict[str, Any]]] = {}
        for row in rows:
            subject = row.get("s")
            if subject is None:
                continue
            grouped.setdefault(subject["raw"], []).append(row)
        return grouped

    @staticmethod
    def _iter_values(value: Any, spec: PropertySpec) -> list[Any]:
        if value is None:
            return []
        if spec.multi:
            values = list(value)
            if isinstance(value, (set, frozenset)):
                values.sort(key=str)
            return [item for item in values if item is not None]
        return [value]

    @staticmethod
    def _to_node(value: Any, spec: PropertySpec) -> Node:
        if isinstance(value, Entity):
            return URIRef(value.uri)
        if isinstance(value, Enum):
            value = value.value
        if spec.iri:
            return URIRef(str(value))
        return Literal(value)

    @staticmethod
    def _cell_value(cell: dict[str, Any]) -> Any:
        if cell.get("type") in {"uri", "bnode"} or cell.get("datatype") == _DATETIME_TYPE:
            return cell.get("raw")
        return cell.get("value")

