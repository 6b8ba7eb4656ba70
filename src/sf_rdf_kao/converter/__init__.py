from sf_rdf_kao.converter.result_mapper import ResultMapper

__all__ = ["ResultMapper"]
