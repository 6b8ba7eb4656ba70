from sf_rdf_kao.common.config import ConfigManager, Settings
from sf_rdf_kao.common.exceptions import (
    APIError,
    CommitError,
    ErrorCode,
    ExternalServiceError,
    MappingError,
    OperationError,
    RepositoryConnectionError,
    TransactionError,
)
from sf_rdf_kao.common.logging import LoggerFactory

__all__ = [
    "ConfigManager",
    "Settings",
    "LoggerFactory",
    "APIError",
    "CommitError",
    "ErrorCode",
    "ExternalServiceError",
    "MappingError",
    "OperationError",
    "RepositoryConnectionError",
    "TransactionError",
]
