"""从原始 SPARQL 文本中提取命名图上下文。

这是基于正则的静态启发式，而不是 SPARQL 解析器：遇到格式错误的查询不会报错，
只可能少提取上下文。
"""
from __future__ import annotations

import re

from .context_set import ContextSet


class QueryContextExtractor:
    """解析 ``FROM <iri>`` 子句。

    - 关键字大小写不敏感，关键字与 ``<`` 之间允许任意空白；
    - ``FROM NAMED <iri>`` 不计入上下文（它不参与默认图）；
    - 结果按出现顺序去重。
    """

    _FROM_PATTERN = re.compile(r"(?<![\w?$:])FROM\s+<([^<>\"{}|^`\\\s]+)>", re.IGNORECASE)
    _DATASET_CLAUSE_PATTERN = re.compile(
        r"(?<![\w?$:])FROM\s+(?:NAMED\s+)?<[^<>\"{}|^`\\\s]*>",
        re.IGNORECASE,
    )

    @classmethod
    def extract(cls, query: str | None) -> ContextSet:
        """返回查询文本中 ``FROM`` 子句引用的命名图集合。

        示例::

            >>> QueryContextExtractor.extract("SELECT ?s FROM <http://ex.org/g1> WHERE {?s ?p ?o}")
            ContextSet(['http://ex.org/g1'])
        """

        if not query:
            return ContextSet.empty()
        return ContextSet.from_iterable(match.group(1) for match in cls._FROM_PATTERN.finditer(query))

    @classmethod
    def strip_dataset_clauses(cls, query: str) -> str:
        """移除 ``FROM`` / ``FROM NAMED`` 子句，供自行处理数据集范围的存储使用。"""

        return cls._DATASET_CLAUSE_PATTERN.sub(" ", query)
