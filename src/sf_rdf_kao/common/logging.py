"""日志工厂。

统一从 :class:`Settings.logging` 读取级别与格式，所有模块通过
``LoggerFactory.create_default_logger(__name__)`` 获取 logger。格式串中的
``%(trace_id)s`` 在调用方未通过 ``extra`` 传入时补为 ``-``。
"""
from __future__ import annotations

import logging
from threading import Lock

from .config import ConfigManager

_ROOT_LOGGER = "sf_rdf_kao"


class _TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = getattr(record, "tx_id", "-")
        return True


class LoggerFactory:
    """按需初始化包级 handler 的 logger 工厂。"""

    _configured = False
    _lock = Lock()

    @classmethod
    def create_default_logger(cls, name: str) -> logging.Logger:
        """返回名为 ``name`` 的 logger，首次调用时挂载包级 handler。"""

        cls._ensure_configured()
        return logging.getLogger(name)

    @classmethod
    def reset(cls) -> None:
        """移除包级 handler，下次获取 logger 时按最新配置重建。"""

        with cls._lock:
            root = logging.getLogger(_ROOT_LOGGER)
            for handler in list(root.handlers):
                root.removeHandler(handler)
            cls._configured = False

    @classmethod
    def _ensure_configured(cls) -> None:
        if cls._configured:
            return
        with cls._lock:
            if cls._configured:
                return
            settings = ConfigManager.current().settings.logging
            root = logging.getLogger(_ROOT_LOGGER)
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(settings.format))
            handler.addFilter(_TraceIdFilter())
            root.addHandler(handler)
            root.setLevel(settings.level.upper())
            cls._configured = True
