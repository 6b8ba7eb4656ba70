from sf_rdf_kao.mapping.entity import Entity, PropertySpec, rdf_field
from sf_rdf_kao.mapping.mapper import EntityMapper, Statement

__all__ = ["Entity", "PropertySpec", "rdf_field", "EntityMapper", "Statement"]
