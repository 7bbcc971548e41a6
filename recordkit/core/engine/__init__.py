"""CRUD engine."""

from recordkit.core.engine.crud import CrudEngine

__all__ = ["CrudEngine"]
