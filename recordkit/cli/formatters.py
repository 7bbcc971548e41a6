"""Rich tables for CLI output."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TextIO

from pydantic import BaseModel
from rich.box import SIMPLE
from rich.console import Console
from rich.table import Table

Row = Mapping[str, object] | BaseModel


def _as_mapping(row: Row) -> Mapping[str, object]:
    return row.model_dump() if isinstance(row, BaseModel) else row


@dataclass(slots=True)
class TableFormatter:
    """Print records, settings and summaries as tables."""

    no_color: bool = False

    def _console(self, stream: TextIO) -> Console:
        return Console(file=stream, color_system=None if self.no_color else "auto", no_color=self.no_color)

    def render(
        self,
        rows: Sequence[Row],
        *,
        stream: TextIO,
        columns: Sequence[str] | None = None,
        title: str | None = None,
    ) -> None:
        """Print ``rows`` under ``columns`` (the first row's keys by default)."""
        mappings = [_as_mapping(row) for row in rows]
        names = list(columns) if columns else list(mappings[0]) if mappings else []
        console = self._console(stream)
        if not names:
            console.print("No data available.")
            return

        table = Table(box=SIMPLE, title=title)
        for name in names:
            table.add_column(name, header_style="" if self.no_color else "bold")
        for mapping in mappings:
            table.add_row(*(self._cell(mapping.get(name)) for name in names))
        console.print(table)
        if not mappings:
            console.print("No data available.")

    @staticmethod
    def _cell(value: object) -> str:
        if value is None:
            return "-"
        if isinstance(value, bool):
            return "yes" if value else "no"
        return str(value)
