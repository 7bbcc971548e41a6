"""Record models."""

from recordkit.core.metadata import PrimaryKey
from recordkit.core.models.entity import Entity, entity_key_field, entity_table_name
from recordkit.core.models.failures import FailedRecord
from recordkit.core.models.results import AddResult, DeleteResult, EditResult, GetResult
from recordkit.core.models.view_model import ViewModel

__all__ = [
    "AddResult",
    "DeleteResult",
    "EditResult",
    "Entity",
    "FailedRecord",
    "GetResult",
    "PrimaryKey",
    "ViewModel",
    "entity_key_field",
    "entity_table_name",
]
