from sf_rdf_kao.context.context_set import ContextLike, ContextSet
from sf_rdf_kao.context.extractor import QueryContextExtractor

__all__ = ["ContextLike", "ContextSet", "QueryContextExtractor"]
