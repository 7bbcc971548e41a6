"""recordkit core: metadata, predicates, mapping, failures, storage and the CRUD engine."""

from recordkit.core.config import EngineSettings, load_settings
from recordkit.core.engine import CrudEngine
from recordkit.core.failures import FailureRegistry
from recordkit.core.mapping import FieldMapper
from recordkit.core.models import (
    AddResult,
    DeleteResult,
    EditResult,
    Entity,
    FailedRecord,
    GetResult,
    PrimaryKey,
    ViewModel,
)
from recordkit.core.predicates import Predicate, where
from recordkit.core.storage import DuckDBStore, InMemoryStore, Store

__all__ = [
    "AddResult",
    "CrudEngine",
    "DeleteResult",
    "DuckDBStore",
    "EditResult",
    "EngineSettings",
    "Entity",
    "FailedRecord",
    "FailureRegistry",
    "FieldMapper",
    "GetResult",
    "InMemoryStore",
    "Predicate",
    "PrimaryKey",
    "Store",
    "ViewModel",
    "load_settings",
    "where",
]
