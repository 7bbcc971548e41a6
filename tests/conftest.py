"""Pytest configuration for the recordkit test suite."""

from __future__ import annotations

import pytest
from support import ExtendedProjectTypeViewModel, WidgetViewModel

from recordkit.core.config import EngineSettings
from recordkit.core.engine import CrudEngine
from recordkit.core.failures import FailureRegistry
from recordkit.core.mapping import FieldMapper
from recordkit.core.storage import DuckDBStore, InMemoryStore
from recordkit.samples import ProjectTypeViewModel


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling integration tests."""

    parser.addoption(
        "--recordkit-run-integration",
        action="store_true",
        default=False,
        help="Run recordkit integration tests that write database files.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the integration marker for recordkit tests."""

    config.addinivalue_line(
        "markers",
        "integration: marks recordkit tests writing a DuckDB database file to disk",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly requested."""

    if config.getoption("--recordkit-run-integration"):
        return

    skip_integration = pytest.mark.skip(
        reason="integration tests require --recordkit-run-integration",
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def settings() -> EngineSettings:
    """Settings with zero backoff."""
    return EngineSettings(max_attempts=3, retry_delay_seconds=0)


@pytest.fixture
def registry() -> FailureRegistry:
    return FailureRegistry()


@pytest.fixture
def mapper() -> FieldMapper:
    return FieldMapper.for_view_models(ProjectTypeViewModel, WidgetViewModel, ExtendedProjectTypeViewModel)


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def duckdb_store():
    store = DuckDBStore()
    yield store
    store.close()


@pytest.fixture
def engine(memory_store, mapper, registry, settings) -> CrudEngine:
    return CrudEngine(memory_store, mapper, registry, settings)


@pytest.fixture
def make_engine(mapper, registry, settings):
    """Build an engine over an arbitrary store."""

    def _make(store, **overrides) -> CrudEngine:
        engine_settings = settings.model_copy(update=overrides) if overrides else settings
        return CrudEngine(store, mapper, registry, engine_settings)

    return _make


@pytest.fixture
def project_types() -> list[ProjectTypeViewModel]:
    return [
        ProjectTypeViewModel(type_name_en="Residential", type_name_ar="سكني", is_active=True),
        ProjectTypeViewModel(type_name_en="Commercial", type_name_ar="تجاري", is_active=True),
        ProjectTypeViewModel(type_name_en="Industrial", type_name_ar="صناعي", is_active=False),
    ]
