from sf_rdf_kao.query.runner import QueryResultIterator, QueryRunner, SPARQLQueryRunner

__all__ = ["QueryRunner", "QueryResultIterator", "SPARQLQueryRunner"]
