"""实体类型描述。

实体是带 ``uri`` 字段的 Pydantic 模型，类变量 ``rdf_type`` 给出其 RDF 类，
``namespace`` 给出未显式声明谓词的字段所用的命名空间。示例::

    class Person(Entity):
        rdf_type = "http://ex.org/Person"
        namespace = "http://ex.org/"

        name: str | None = None                       # -> http://ex.org/name
        knows: list[str] = rdf_field(iri=True, default_factory=list)
        email: str | None = rdf_field("http://xmlns.com/foaf/0.1/mbox")
"""
from __future__ import annotations

import types
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field
from pydantic.fields import FieldInfo

from sf_rdf_kao.common.exceptions import MappingError

_RDF_KEY = "rdf"
_MULTI_ORIGINS = (list, set, frozenset, tuple)


def rdf_field(
    predicate: str | None = None,
    *,
    iri: bool = False,
    default: Any = None,
    default_factory: Callable[[], Any] | None = None,
    **kwargs: Any,
) -> Any:
    """声明映射到 RDF 谓词的字段。

    参数：
        predicate：谓词 IRI，缺省为 ``namespace + 字段名``。
        iri：为 True 时取值按 IRI（资源引用）写入，否则写为字面量。
        default / default_factory：同 ``pydantic.Field``。
    """

    extra = {_RDF_KEY: {"predicate": predicate, "iri": iri}}
    if default_factory is not None:
        return Field(default_factory=default_factory, json_schema_extra=extra, **kwargs)
    return Field(default=default, json_schema_extra=extra, **kwargs)


@dataclass(frozen=True, slots=True)
class PropertySpec:
    """字段到谓词的映射描述。"""

    name: str
    predicate: str
    iri: bool
    multi: bool


class Entity(BaseModel):
    """可持久化实体的基类。``str(instance)`` 返回其 URI。"""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    rdf_type: ClassVar[str] = ""
    namespace: ClassVar[str] = ""

    uri: str

    def __str__(self) -> str:
        return self.uri

    @classmethod
    def type_uri(cls) -> str:
        if not cls.rdf_type:
            raise MappingError(f"实体类型 {cls.__name__} 未声明 rdf_type")
        return cls.rdf_type

    @classmethod
    def properties(cls) -> dict[str, PropertySpec]:
        """返回除 ``uri`` 外所有字段的映射描述。"""

        specs: dict[str, PropertySpec] = {}
        for name, info in cls.model_fields.items():
            if name == "uri":
                continue
            options = _rdf_options(info)
            predicate = options.get("predicate") or f"{cls.namespace}{name}"
            if not predicate.startswith(("http://", "https://", "urn:")):
                raise MappingError(
                    f"字段 {cls.__name__}.{name} 缺少可用的谓词 IRI",
                    details={"field": name, "predicate": predicate},
                )
            specs[name] = PropertySpec(
                name=name,
                predicate=predicate,
                iri=bool(options.get("iri", False)),
                multi=_is_multi(info.annotation),
            )
        return specs


def _rdf_options(info: FieldInfo) -> dict[str, Any]:
    extra = info.json_schema_extra
    if isinstance(extra, dict):
        options = extra.get(_RDF_KEY)
        if isinstance(options, dict):
            return options
    return {}


def _is_multi(annotation: Any) -> bool:
    origin = get_origin(annotation)
    if origin in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        return len(args) == 1 and _is_multi(args[0])
    return origin in _MULTI_ORIGINS or annotation in _MULTI_ORIGINS
