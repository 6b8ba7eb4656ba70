"""Example: create, read, update and delete a Person inside one named graph."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parent))

from helpers import DEMO_GRAPH, EX, Person, load_demo_config  # noqa: E402

from sf_rdf_kao import KnowledgeAccessObject  # noqa: E402


async def run_example() -> dict[str, Any]:
    """执行一轮 CRUD，返回每一步的结果摘要。"""

    kao = KnowledgeAccessObject(Person)
    summary: dict[str, Any] = {}

    bob = await kao.create(EX, "Bob", [DEMO_GRAPH])
    summary["created"] = str(bob) if bob else None

    if bob is not None:
        bob = bob.model_copy(update={"name": "Bob", "age": 42, "knows": [f"{EX}Alice"]})
        await kao.update(bob, [DEMO_GRAPH])
    loaded = await kao.retrieve_instance(EX, "Bob", [DEMO_GRAPH])
    summary["retrieved"] = loaded.model_dump() if loaded else None

    other = await kao.create_with_unique_id(EX, "person-", [DEMO_GRAPH])
    summary["unique"] = str(other) if other else None
    summary["all"] = [str(person) for person in await kao.retrieve_all_instances([DEMO_GRAPH])]

    await kao.delete(EX, "Bob", [DEMO_GRAPH])
    summary["after_delete"] = await kao.retrieve_instance(EX, "Bob", [DEMO_GRAPH])
    summary["last_status"] = kao.last_result.status if kao.last_result else None
    return summary


async def main() -> None:
    load_demo_config()
    summary = await run_example()
    for key, value in summary.items():
        print(f"{key}: {value}")


if __name__ == "__main__":
    asyncio.run(main())
