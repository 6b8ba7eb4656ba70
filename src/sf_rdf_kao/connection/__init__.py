from sf_rdf_kao.connection.client import CircuitBreaker, FusekiClient, RDFClient
from sf_rdf_kao.connection.factory import RepositoryFactory
from sf_rdf_kao.connection.fuseki import FusekiConnection, FusekiRepository
from sf_rdf_kao.connection.memory import MemoryConnection, MemoryRepository
from sf_rdf_kao.connection.pool import PooledConnection, PooledRepository, PoolStats
from sf_rdf_kao.connection.repository import BufferedConnection, RDFConnection, Repository

__all__ = [
    "RDFClient",
    "FusekiClient",
    "CircuitBreaker",
    "RDFConnection",
    "Repository",
    "BufferedConnection",
    "FusekiConnection",
    "FusekiRepository",
    "MemoryConnection",
    "MemoryRepository",
    "PooledConnection",
    "PooledRepository",
    "PoolStats",
    "RepositoryFactory",
]
