"""SPARQL JSON 结果映射。

`ResultMapper` 把 SPARQL JSON 结果（Fuseki 返回值或内存仓库序列化结果）转换为
``{变量: {value, raw, type, ...}}`` 形式的行；查询执行器与实体映射共用这一格式。
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

_XSD = "http://www.w3.org/2001/XMLSchema#"


class ResultMapper:
    """将 SPARQL 绑定转换为带类型信息的行。

    - XSD 整数/小数/布尔/日期时间自动转换为 Python 值；
    - 保留原始文本 ``raw``、语言标签与数据类型；
    - 未知类型保持原样。
    """

    _INT_TYPES = {
        f"{_XSD}{name}"
        for name in (
            "integer",
            "int",
            "long",
            "short",
            "byte",
            "nonNegativeInteger",
            "positiveInteger",
            "nonPositiveInteger",
            "negativeInteger",
            "unsignedInt",
            "unsignedShort",
            "unsignedByte",
            "unsignedLong",
        )
    }
    _DECIMAL_TYPES = {f"{_XSD}decimal", f"{_XSD}double", f"{_XSD}float"}
    _BOOL_TYPE = f"{_XSD}boolean"
    _DATETIME_TYPE = f"{_XSD}dateTime"

    def map_result(self, raw: dict[str, Any]) -> list[dict[str, Any]]:
        """映射 ``{"vars": [...], "bindings": [...]}`` 形式的查询结果。"""

        return self.map_bindings(raw.get("vars", []), raw.get("bindings", []))

    def map_bindings(self, vars: list[str], bindings: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """将绑定数组转换为行列表，缺失的变量取值为 ``None``。

        参数:
            vars: 查询头部变量名，例如 ``["s", "p", "o"]``。
            bindings: ``results.bindings`` 数组，例如
                ``[{"s": {"type": "uri", "value": "http://ex.org/Bob"}}]``。
        """

        rows: list[dict[str, Any]] = []
        for binding in bindings:
            rows.append({var: self._convert_cell(binding.get(var)) for var in vars})
        return rows

    @staticmethod
    def first_value(row: dict[str, Any] | None) -> Any:
        """单变量行返回该单元格的值；多变量行原样返回。"""

        if row is None:
            return None
        if len(row) == 1:
            cell = next(iter(row.values()))
            return None if cell is None else cell.get("value")
        return row

    def _convert_cell(self, cell: dict[str, Any] | None) -> dict[str, Any] | None:
        if cell is None:
            return None
        value = cell.get("value")
        dtype = cell.get("datatype")
        ctype = cell.get("type")
        lang = cell.get("xml:lang")
        payload = {
            "value": self._cast_value(value, dtype),
            "raw": value,
            "type": "literal" if ctype == "typed-literal" else ctype,
        }
        if dtype:
            payload["datatype"] = dtype
        if lang:
            payload["lang"] = lang
        return payload

    def _cast_value(self, value: Any, dtype: str | None) -> Any:
        if dtype is None:
            return value
        if dtype in self._INT_TYPES:
            try:
                return int(value)
            except (TypeError, ValueError):
                return value
        if dtype in self._DECIMAL_TYPES:
            try:
                return float(Decimal(value))
            except (TypeError, ValueError, ArithmeticError):
                return value
        if dtype == self._BOOL_TYPE:
            return str(value).lower() in {"true", "1"}
        if dtype == self._DATETIME_TYPE:
            return self._normalize_datetime(str(value))
        return value

    @staticmethod
    def _normalize_datetime(text: str) -> str:
        """将 XSD ``dateTime`` 统一为 ISO 8601 字符串，无时区时补 ``Z``；解析失败返回原值。"""

        normalized = text.replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(normalized)
        except ValueError:
            return text
        if dt.tzinfo:
            return dt.isoformat()
        return f"{dt.isoformat()}Z"
