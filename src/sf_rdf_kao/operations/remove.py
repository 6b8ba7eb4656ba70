"""实例删除。"""
from __future__ import annotations

from rdflib import URIRef

from sf_rdf_kao.connection.repository import RDFConnection
from sf_rdf_kao.context import ContextSet

from .sparql import delete_subject


class RemoveOperations:
    async def remove(self, subject: str, connection: RDFConnection, contexts: ContextSet) -> None:
        """删除上下文中以 ``subject`` 为主语的全部语句；实例不存在时不做任何事。"""

        await connection.update(delete_subject(URIRef(subject), contexts))
