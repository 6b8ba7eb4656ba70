"""QueryContextExtractor 测试：FROM 子句提取与容错。"""
from __future__ import annotations

import pytest

from sf_rdf_kao.context import ContextSet, QueryContextExtractor


@pytest.mark.parametrize(
    "query",
    [
        "SELECT ?s FROM <http://ex.org/g1> WHERE { ?s ?p ?o }",
        "select ?s from <http://ex.org/g1> where { ?s ?p ?o }",
        "SELECT ?s\nFrom\t\t<http://ex.org/g1>\nWHERE { ?s ?p ?o }",
        "SELECT ?s FROM     <http://ex.org/g1> FROM <http://ex.org/g1> WHERE { ?s ?p ?o }",
    ],
)
def test_extract_single_graph_whitespace_and_case(query: str) -> None:
    assert QueryContextExtractor.extract(query) == ContextSet.from_iterable(["http://ex.org/g1"])


def test_extract_multiple_graphs_in_textual_order() -> None:
    query = (
        "PREFIX ex: <http://ex.org/>\n"
        "SELECT ?s FROM <http://ex.org/g2> FROM <http://ex.org/g1> FROM <urn:graph:3>\n"
        "WHERE { ?s ?p ?o }"
    )

    contexts = QueryContextExtractor.extract(query)

    assert list(contexts) == ["http://ex.org/g2", "http://ex.org/g1", "urn:graph:3"]


def test_from_named_is_not_a_context() -> None:
    query = "SELECT ?s FROM NAMED <http://ex.org/named> FROM <http://ex.org/g1> WHERE { GRAPH ?g { ?s ?p ?o } }"

    assert list(QueryContextExtractor.extract(query)) == ["http://ex.org/g1"]


@pytest.mark.parametrize(
    "query",
    [
        None,
        "",
        "SELECT ?s WHERE { ?s ?p ?o }",
        "SELECT ?s FROM http://ex.org/g1 WHERE {",
        "SELECT ?from WHERE { ?from ?p <http://ex.org/x> }",
        "this is not sparql at all FROM <",
    ],
)
def test_extract_tolerates_queries_without_clauses(query) -> None:
    """无 FROM 子句或语法错误的查询返回空集合而不是报错。"""

    assert QueryContextExtractor.extract(query) == ContextSet.empty()


def test_strip_dataset_clauses_removes_from_and_from_named() -> None:
    query = "SELECT ?s FROM <http://ex.org/g1> FROM NAMED <http://ex.org/g2> WHERE { ?s ?p ?o }"

    stripped = QueryContextExtractor.strip_dataset_clauses(query)

    assert "FROM" not in stripped
    assert "WHERE { ?s ?p ?o }" in stripped
    assert "<http://ex.org/g1>" not in stripped
