from .common.exceptions import (
    APIError,
    CommitError,
    ErrorCode,
    ExternalServiceError,
    MappingError,
    OperationError,
    RepositoryConnectionError,
    TransactionError,
)
from .connection import (
    FusekiClient,
    FusekiRepository,
    MemoryRepository,
    PooledRepository,
    RDFConnection,
    Repository,
    RepositoryFactory,
)
from .context import ContextSet, QueryContextExtractor
from .kao import KnowledgeAccessObject
from .mapping import Entity, EntityMapper, rdf_field
from .query import QueryResultIterator, QueryRunner, SPARQLQueryRunner
from .transaction import AuditLogger, SessionResult, TransactionalSession

__all__ = [
    "APIError",
    "CommitError",
    "ErrorCode",
    "ExternalServiceError",
    "MappingError",
    "OperationError",
    "RepositoryConnectionError",
    "TransactionError",
    "FusekiClient",
    "FusekiRepository",
    "MemoryRepository",
    "PooledRepository",
    "RDFConnection",
    "Repository",
    "RepositoryFactory",
    "ContextSet",
    "QueryContextExtractor",
    "KnowledgeAccessObject",
    "Entity",
    "EntityMapper",
    "rdf_field",
    "QueryResultIterator",
    "QueryRunner",
    "SPARQLQueryRunner",
    "AuditLogger",
    "SessionResult",
    "TransactionalSession",
]
