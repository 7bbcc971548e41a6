"""Sample record types used by the CLI demo and the test-suite."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import Field

from recordkit.core.models import Entity, PrimaryKey, ViewModel


class ProjectType(Entity):
    """Stored project type; ``created_date`` is managed by the store side."""

    id: int = 0
    type_name_en: str | None = None
    type_name_ar: str | None = None
    is_active: bool = True
    created_date: datetime = Field(default_factory=datetime.now)


class ProjectTypeViewModel(ViewModel):
    __entity__ = ProjectType

    id: Annotated[int, PrimaryKey()] = 0
    type_name_en: str | None = None
    type_name_ar: str | None = None
    is_active: bool = True
