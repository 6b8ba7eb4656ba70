from sf_rdf_kao.operations.create import CreateOperations
from sf_rdf_kao.operations.remove import RemoveOperations
from sf_rdf_kao.operations.retrieve import RetrieveOperations
from sf_rdf_kao.operations.sparql import SPARQLSanitizer, delete_subject, insert_data, scoped_pattern
from sf_rdf_kao.operations.update import UpdateOperations

__all__ = [
    "CreateOperations",
    "RemoveOperations",
    "RetrieveOperations",
    "UpdateOperations",
    "SPARQLSanitizer",
    "delete_subject",
    "insert_data",
    "scoped_pattern",
]
