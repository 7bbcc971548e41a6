"""View model metadata resolution."""

from recordkit.core.metadata.resolver import (
    PrimaryKey,
    ViewModelMetadata,
    reset_primary_key,
    resolve,
    resolve_entity_type,
    resolve_primary_key,
)

__all__ = [
    "PrimaryKey",
    "ViewModelMetadata",
    "reset_primary_key",
    "resolve",
    "resolve_entity_type",
    "resolve_primary_key",
]
