"""示例脚本共享工具：加载演示配置与示例实体。"""
from __future__ import annotations

from pathlib import Path

from sf_rdf_kao import Entity, rdf_field
from sf_rdf_kao.common.config import ConfigManager

EX = "http://example.org/people/"
DEMO_GRAPH = "urn:sf:demo:people"


def load_demo_config(path: str | None = None) -> ConfigManager:
    """加载 examples/config/demo.yaml，供示例脚本直接使用。"""

    config_path = path or str(Path(__file__).resolve().parent / "config" / "demo.yaml")
    return ConfigManager.load(override_path=config_path)


class Person(Entity):
    """演示用实体：姓名、年龄与认识的人。"""

    rdf_type = "http://xmlns.com/foaf/0.1/Person"
    namespace = "http://xmlns.com/foaf/0.1/"

    name: str | None = None
    age: int | None = None
    knows: list[str] = rdf_field(iri=True, default_factory=list)
