"""进程内 rdflib ``Dataset`` 仓库，适用于测试与嵌入式场景。

- 查询带上下文时，只把这些命名图的四元组复制到临时数据集中执行，等价于
  SPARQL 协议的 ``default-graph-uri``；查询文本里的 ``FROM`` 子句同样在此处理。
- 提交时按顺序执行缓冲的 UPDATE；任一语句失败则恢复提交前快照，保证原子性。
- UPDATE 在共享同一 store 的 :class:`_UpdateView` 上执行：不带 ``GRAPH`` 的三元组
  只写入（或删除自）默认图，与 SPARQL 1.1 Update 的语义一致。
"""
from __future__ import annotations

import json
from threading import Lock
from typing import Any, Optional

from rdflib import Dataset, Graph, URIRef
from rdflib.graph import DATASET_DEFAULT_GRAPH_ID

from sf_rdf_kao.common.exceptions import ErrorCode, RepositoryConnectionError
from sf_rdf_kao.context import ContextSet, QueryContextExtractor

from .repository import BufferedConnection


class _UpdateView(Dataset):
    """执行 UPDATE 用的数据集视图。

    rdflib 在默认图取并集时把 ``INSERT DATA`` 等三元组直接交给数据集本身，而
    ``Dataset``（7.x）只接受四元组；这里把三元组改写到默认图。
    """

    def _default(self) -> Graph:
        return self.get_context(DATASET_DEFAULT_GRAPH_ID)

    def __iadd__(self, other):
        default = self._default()
        for item in other:
            if len(item) == 3:
                default.add(item)
            else:
                self.add(item)
        return self

    def __isub__(self, other):
        default = self._default()
        for item in other:
            if len(item) == 3:
                default.remove(item)
            else:
                self.remove(item)
        return self


class MemoryConnection(BufferedConnection):
    """访问 :class:`MemoryRepository` 的连接。"""

    def __init__(self, repository: "MemoryRepository", *, trace_id: str | None = None) -> None:
        super().__init__(trace_id=trace_id)
        self._repository = repository

    async def _select(self, query: str, contexts: ContextSet) -> dict[str, Any]:
        result = self._repository.query(query, contexts)
        payload = json.loads(result.serialize(format="json"))
        return {
            "vars": payload.get("head", {}).get("vars", []),
            "bindings": payload.get("results", {}).get("bindings", []),
            "stats": {"status": 200, "durationMs": 0.0},
        }

    async def _ask(self, query: str, contexts: ContextSet) -> bool:
        result = self._repository.query(query, contexts)
        return bool(result.askAnswer)

    async def _apply_updates(self, statements: list[str]) -> None:
        self._repository.apply(statements)


class MemoryRepository:
    """基于 rdflib 的内存三元组存储。"""

    def __init__(self, dataset: Optional[Dataset] = None) -> None:
        self._dataset = dataset if dataset is not None else Dataset(default_union=True)
        self._lock = Lock()
        self._available = True

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    async def get_connection(self, *, trace_id: str | None = None) -> MemoryConnection:
        if not self._available:
            raise RepositoryConnectionError(ErrorCode.REPOSITORY_UNAVAILABLE, "内存仓库已关闭")
        return MemoryConnection(self, trace_id=trace_id)

    def shutdown(self) -> None:
        """关闭仓库，之后获取连接将失败。"""

        self._available = False

    def query(self, query: str, contexts: ContextSet):
        """在上下文并集（或整个数据集）上执行查询，返回 rdflib ``Result``。"""

        scope = ContextSet.merge(contexts, QueryContextExtractor.extract(query))
        text = QueryContextExtractor.strip_dataset_clauses(query)
        with self._lock:
            target = self._scoped_dataset(scope) if scope else self._dataset
            result = target.query(text)
            if result.type == "SELECT":
                # 绑定是惰性生成的，需在锁内物化
                result.bindings = list(result.bindings)
            return result

    def apply(self, statements: list[str]) -> None:
        """原子地执行一组 UPDATE 语句。"""

        with self._lock:
            snapshot = self._snapshot()
            view = _UpdateView(store=self._dataset.store, default_union=self._dataset.default_union)
            try:
                for statement in statements:
                    view.update(statement)
            except Exception:
                self._restore(snapshot)
                raise

    def quad_count(self) -> int:
        with self._lock:
            return sum(1 for _ in self._dataset.quads((None, None, None, None)))

    # ---- 内部工具 -----------------------------------------------------

    def _scoped_dataset(self, scope: ContextSet) -> Dataset:
        scoped = Dataset(default_union=True)
        for graph_iri in scope.to_uris():
            for s, p, o, _ in self._dataset.quads((None, None, None, graph_iri)):
                scoped.add((s, p, o, graph_iri))
        return scoped

    def _snapshot(self) -> list[tuple[Any, Any, Any, URIRef]]:
        quads = []
        for s, p, o, graph in self._dataset.quads((None, None, None, None)):
            identifier = getattr(graph, "identifier", graph)
            quads.append((s, p, o, identifier if identifier is not None else DATASET_DEFAULT_GRAPH_ID))
        return quads

    def _restore(self, snapshot: list[tuple[Any, Any, Any, URIRef]]) -> None:
        self._dataset.remove((None, None, None, None))
        for quad in snapshot:
            self._dataset.add(quad)
