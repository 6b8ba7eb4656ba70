"""Example: raw SPARQL through the KAO, with contexts resolved from FROM clauses."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parent))

from helpers import DEMO_GRAPH, EX, Person, load_demo_config  # noqa: E402

from sf_rdf_kao import KnowledgeAccessObject  # noqa: E402


async def run_queries() -> dict[str, Any]:
    kao = KnowledgeAccessObject(Person)
    await kao.execute_sparql_update_query(
        f"""
        PREFIX foaf: <http://xmlns.com/foaf/0.1/>
        INSERT DATA {{
          GRAPH <{DEMO_GRAPH}> {{
            <{EX}Alice> a foaf:Person ; foaf:name "Alice" ; foaf:age 31 .
            <{EX}Carol> a foaf:Person ; foaf:name "Carol" ; foaf:age 27 .
          }}
        }}
        """
    )

    names = await kao.execute_sparql_query_result_list(
        f"PREFIX foaf: <http://xmlns.com/foaf/0.1/> "
        f"SELECT ?name FROM <{DEMO_GRAPH}> WHERE {{ ?p foaf:name ?name }} ORDER BY ?name"
    )
    oldest = await kao.execute_sparql_query_single_result(
        f"PREFIX foaf: <http://xmlns.com/foaf/0.1/> "
        f"SELECT ?p ?age FROM <{DEMO_GRAPH}> WHERE {{ ?p foaf:age ?age }} ORDER BY DESC(?age) LIMIT 1"
    )
    streamed = [
        row
        async for row in kao.execute_query_as_iterator(
            "SELECT ?p WHERE { ?p a <http://xmlns.com/foaf/0.1/Person> } ORDER BY ?p", [DEMO_GRAPH]
        )
    ]
    has_alice = await kao.execute_boolean_query(f"ASK {{ GRAPH <{DEMO_GRAPH}> {{ <{EX}Alice> ?p ?o }} }}")
    return {
        "contexts": list(kao.get_contexts()),
        "names": names,
        "oldest": oldest["p"]["value"] if isinstance(oldest, dict) else None,
        "streamed": streamed,
        "has_alice": has_alice,
    }


async def main() -> None:
    load_demo_config()
    for key, value in (await run_queries()).items():
        print(f"{key}: {value}")


if __name__ == "__main__":
    asyncio.run(main())
