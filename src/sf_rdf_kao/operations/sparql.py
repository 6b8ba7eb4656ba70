"""操作助手共用的 SPARQL 片段构建工具。"""
from __future__ import annotations

from typing import Iterable

from rdflib import URIRef

from sf_rdf_kao.context import ContextSet
from sf_rdf_kao.mapping import Statement


class SPARQLSanitizer:
    """IRI 校验工具，在拼接语句前阻断注入或格式风险。

    注意：仅做语法级防护，不等价于权限控制。
    """

    _ALLOWED_SCHEMES = ("http://", "https://", "urn:")
    _DANGEROUS_CHARS = ("<", ">", '"', "{", "}", "|", "\\", "^", "`")

    @classmethod
    def escape_uri(cls, uri: str) -> str:
        """校验并原样返回 IRI（不含尖括号）。

        异常：
            ValueError：IRI 为空、协议不在 http/https/urn 之列、含空白或危险字符。
        """

        if not uri or not isinstance(uri, str):
            raise ValueError(f"Invalid URI: {uri!r}")
        if not uri.startswith(cls._ALLOWED_SCHEMES):
            raise ValueError(f"Invalid URI scheme: {uri}")
        if any(ch in uri for ch in cls._DANGEROUS_CHARS) or any(ch.isspace() for ch in uri):
            raise ValueError(f"URI contains dangerous characters: {uri}")
        return uri

    @classmethod
    def iri(cls, uri: str) -> str:
        """返回 ``<iri>`` 形式。"""

        return f"<{cls.escape_uri(str(uri))}>"


def render_statement(statement: Statement) -> str:
    subject, predicate, obj = statement
    return f"{subject.n3()} {predicate.n3()} {obj.n3()} ."


def insert_data(statements: Iterable[Statement], contexts: ContextSet) -> str:
    """构建 ``INSERT DATA``；有上下文时写入每个命名图，否则写入默认图。"""

    lines = "\n".join("    " + render_statement(statement) for statement in statements)
    if not lines:
        return ""
    if not contexts:
        return f"INSERT DATA {{\n{lines}\n}}"
    blocks = "\n".join(
        f"  GRAPH {SPARQLSanitizer.iri(graph)} {{\n{lines}\n  }}" for graph in contexts
    )
    return f"INSERT DATA {{\n{blocks}\n}}"


def graph_filter(variable: str, contexts: ContextSet) -> str:
    graphs = ", ".join(SPARQLSanitizer.iri(graph) for graph in contexts)
    return f"FILTER({variable} IN ({graphs}))"


def scoped_pattern(pattern: str, contexts: ContextSet, *, graph_var: str = "?g") -> str:
    """把三元组模式限定在上下文内。

    无上下文时同时匹配默认图与所有命名图。
    """

    if contexts:
        return f"{{ GRAPH {graph_var} {{ {pattern} }} {graph_filter(graph_var, contexts)} }}"
    return f"{{ {{ {pattern} }} UNION {{ GRAPH {graph_var} {{ {pattern} }} }} }}"


def delete_subject(subject: URIRef, contexts: ContextSet, *, predicates: Iterable[str] | None = None) -> str:
    """删除主语为 ``subject`` 的语句，可按谓词集合过滤。

    无上下文时从默认图与所有命名图中删除。
    """

    subject_iri = SPARQLSanitizer.iri(str(subject))
    predicate_list = list(predicates) if predicates is not None else None
    if predicate_list is not None and not predicate_list:
        return ""
    predicate_filter = ""
    if predicate_list:
        values = ", ".join(SPARQLSanitizer.iri(predicate) for predicate in predicate_list)
        predicate_filter = f" FILTER(?p IN ({values}))"

    if contexts:
        return (
            f"DELETE {{ GRAPH ?g {{ {subject_iri} ?p ?o }} }}\n"
            f"WHERE {{ GRAPH ?g {{ {subject_iri} ?p ?o }} {graph_filter('?g', contexts)}{predicate_filter} }}"
        )
    return (
        f"DELETE {{ {subject_iri} ?p ?o }}\n"
        f"WHERE {{ {subject_iri} ?p ?o{predicate_filter} }} ;\n"
        f"DELETE {{ GRAPH ?g {{ {subject_iri} ?p ?o }} }}\n"
        f"WHERE {{ GRAPH ?g {{ {subject_iri} ?p ?o }}{predicate_filter} }}"
    )
