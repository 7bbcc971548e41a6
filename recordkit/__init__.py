"""recordkit - generic CRUD engine over view models and entities

Maps caller-facing view models onto stored entities, translates predicates
between the two shapes and retries storage work per record, collecting
failures instead of raising them.
"""

from recordkit.core import (
    AddResult,
    CrudEngine,
    DeleteResult,
    DuckDBStore,
    EditResult,
    EngineSettings,
    Entity,
    FailedRecord,
    FailureRegistry,
    FieldMapper,
    GetResult,
    InMemoryStore,
    Predicate,
    PrimaryKey,
    Store,
    ViewModel,
    load_settings,
    where,
)

__version__ = "0.1.0"

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
    "__version__",
]
