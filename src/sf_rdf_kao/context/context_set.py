"""命名图上下文集合。

`ContextSet` 是不可变的值类型：保留首次出现的顺序、去重，比较时按集合语义
（与顺序无关）。任何“缺省/空”输入都规范化为空集合，绝不会出现 ``None``。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Union

from rdflib import URIRef

ContextLike = Union[str, URIRef]


@dataclass(frozen=True, slots=True)
class ContextSet:
    """有序、无重复的命名图 IRI 集合。"""

    items: tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "ContextSet":
        return _EMPTY

    @classmethod
    def from_iterable(cls, raw: Iterable[ContextLike] | ContextLike | "ContextSet" | None) -> "ContextSet":
        """由任意可迭代对象构造集合。

        参数：
            raw：命名图 IRI 序列，例如 ``["http://ex.org/g1", URIRef("http://ex.org/g2")]``；
                单个字符串视为一个 IRI；``None`` 或空序列返回空集合；空白项会被忽略。

        返回：
            去重后的 :class:`ContextSet`。
        """

        if raw is None:
            return _EMPTY
        if isinstance(raw, ContextSet):
            return raw
        if isinstance(raw, str):
            raw = [raw]
        seen: dict[str, None] = {}
        for item in raw:
            if item is None:
                continue
            text = str(item).strip()
            if text:
                seen.setdefault(text, None)
        if not seen:
            return _EMPTY
        return cls(tuple(seen))

    @staticmethod
    def merge(first: "ContextSet", second: "ContextSet") -> "ContextSet":
        """集合并集，``first`` 的顺序在前。"""

        return ContextSet.from_iterable((*first.items, *second.items))

    def union(self, other: Iterable[ContextLike] | "ContextSet" | None) -> "ContextSet":
        return ContextSet.merge(self, ContextSet.from_iterable(other))

    def to_uris(self) -> list[URIRef]:
        """转换为 rdflib ``URIRef`` 列表。"""

        return [URIRef(item) for item in self.items]

    def __iter__(self) -> Iterator[str]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item: object) -> bool:
        return str(item) in self.items

    def __bool__(self) -> bool:
        return bool(self.items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContextSet):
            return NotImplemented
        return frozenset(self.items) == frozenset(other.items)

    def __hash__(self) -> int:
        return hash(frozenset(self.items))

    def __repr__(self) -> str:
        return f"ContextSet({list(self.items)!r})"


_EMPTY = ContextSet()
