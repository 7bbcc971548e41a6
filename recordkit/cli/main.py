"""Main entry point for the recordkit command line interface."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any

import typer

from recordkit.core.config import EngineSettings, load_settings
from recordkit.core.engine import CrudEngine
from recordkit.core.exceptions import ConfigurationError
from recordkit.core.failures import FailureRegistry
from recordkit.core.logging import LOG_LEVELS, configure_logging
from recordkit.core.mapping import FieldMapper
from recordkit.core.predicates import where
from recordkit.core.storage import DuckDBStore
from recordkit.samples import ProjectTypeViewModel

from .formatters import TableFormatter


def create_app() -> typer.Typer:
    """Create a Typer application instance for recordkit."""

    app = typer.Typer(add_completion=False, help="recordkit command line interface")

    @app.callback()
    def main(
        ctx: typer.Context,
        config: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="TOML file with an [engine] table.",
        ),
        database: str | None = typer.Option(
            None,
            "--database",
            help="DuckDB database path (overrides the configuration).",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            help="Log level (overrides the configuration).",
        ),
        no_color: bool = typer.Option(
            False,
            "--no-color",
            help="Disable colorized table output.",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        try:
            settings = load_settings(config)
        except ConfigurationError as exc:
            raise typer.BadParameter(str(exc), param_hint="--config") from exc

        overrides: dict[str, Any] = {}
        if database is not None:
            overrides["database_path"] = database
        if log_level is not None:
            normalized_level = log_level.strip().upper()
            if normalized_level not in LOG_LEVELS:
                raise typer.BadParameter(f"Unknown log level '{log_level}'", param_hint="--log-level")
            overrides["log_level"] = normalized_level
        settings = settings.model_copy(update=overrides)

        try:
            configure_logging(settings.log_level)
        except ValueError as exc:
            raise typer.BadParameter(f"Unknown log level '{settings.log_level}'", param_hint="--config") from exc
        ctx.obj.update({"settings": settings, "formatter": TableFormatter(no_color=no_color)})

    @app.command("show-config")
    def show_config(ctx: typer.Context) -> None:
        """Print the effective engine settings."""
        settings: EngineSettings = ctx.obj["settings"]
        rows = [{"setting": name, "value": value} for name, value in settings.model_dump().items()]
        ctx.obj["formatter"].render(rows, stream=sys.stdout, columns=["setting", "value"], title="Settings")

    @app.command("demo")
    def demo(
        ctx: typer.Context,
        count: int = typer.Option(2, "--count", min=1, help="Number of active project types to add."),
    ) -> None:
        """Run add, edit, get and delete against a DuckDB store."""
        settings: EngineSettings = ctx.obj["settings"]
        formatter: TableFormatter = ctx.obj["formatter"]
        summary, records = asyncio.run(run_demo(settings, count))
        formatter.render(
            records,
            stream=sys.stdout,
            columns=["id", "type_name_en", "type_name_ar", "is_active"],
            title="Project types after edit",
        )
        formatter.render(summary, stream=sys.stdout, columns=["operation", "succeeded", "failed"], title="Summary")

    return app


async def run_demo(settings: EngineSettings, count: int = 2) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Exercise every engine operation on the sample project types.

    Returns:
        Per-operation summary rows, and the records fetched after the edit
    """
    with DuckDBStore(settings.database_path) as store:
        engine = CrudEngine(
            store,
            FieldMapper.for_view_models(ProjectTypeViewModel),
            FailureRegistry(),
            settings,
        )
        summary: list[dict[str, Any]] = []

        new_records = [
            ProjectTypeViewModel(type_name_en=f"New Project {i}", type_name_ar=f"مشروع جديد {i}", is_active=True)
            for i in range(1, count + 1)
        ]
        new_records.append(ProjectTypeViewModel(type_name_en="Archived Project", is_active=False))
        active = where(ProjectTypeViewModel, lambda vm: vm.is_active == True)  # noqa: E712

        added = await engine.add(ProjectTypeViewModel, new_records, predicate=active)
        summary.append({"operation": "add", "succeeded": len(added.saved_records), "failed": len(added.failed_records)})

        def rename(vm: ProjectTypeViewModel) -> None:
            vm.type_name_en = f"{vm.type_name_en} (edited)"

        edited = await engine.edit(ProjectTypeViewModel, predicate=active, update_action=rename)
        summary.append(
            {"operation": "edit", "succeeded": len(edited.updated_entities), "failed": len(edited.failed_records)}
        )

        fetched = await engine.get(ProjectTypeViewModel, return_all=True)
        summary.append({"operation": "get", "succeeded": len(fetched.records), "failed": len(fetched.failed_records)})
        records = [record.model_dump() for record in fetched.records]

        deleted = await engine.delete(ProjectTypeViewModel, predicate=active)
        summary.append({"operation": "delete", "succeeded": deleted.deleted_count, "failed": len(deleted.failed_records)})

    return summary, records


app = create_app()
