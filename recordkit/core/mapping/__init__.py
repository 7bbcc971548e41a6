"""Field mapping between view models and entities."""

from recordkit.core.mapping.mapper import FieldMapper, TypeMap

__all__ = ["FieldMapper", "TypeMap"]
