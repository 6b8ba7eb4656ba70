from sf_rdf_kao.transaction.audit import AuditLogger, AuditRecord
from sf_rdf_kao.transaction.session import Operation, SessionResult, TransactionalSession

__all__ = ["AuditLogger", "AuditRecord", "Operation", "SessionResult", "TransactionalSession"]
