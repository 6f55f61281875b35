"""
Root Typer application for the phenospine CLI.

Commands:
    phenospine run CONFIG [--out DIR] [--log-level L] [--json-logs]
    phenospine validate CONFIG
    phenospine --version
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from phenospine import __version__
from phenospine.core.errors import PhenoSpineError
from phenospine.core.logging import configure_logging

app = typer.Typer(
    name="phenospine",
    help="phenospine: compile annotated clinical tables into GA4GH phenopackets.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"phenospine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """phenospine CLI: run and validate cohort pipelines."""


def _fail(exc: Exception) -> None:
    message = str(exc)
    if isinstance(exc, PhenoSpineError):
        message = f"({exc.category.value}) {exc}"
    err_console.print(f"[bold red]Error[/bold red] {message}")
    raise typer.Exit(code=1)


@app.command("run")
def run(
    config: Path = typer.Argument(..., help="Pipeline config (.yaml, .yml or .json)"),
    out: Path | None = typer.Option(None, "--out", "-o", help="Output directory (overrides config)"),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level, e.g. DEBUG"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
) -> None:
    """Extract, normalise, collect and write phenopackets."""
    from phenospine.config.pipeline_config import PipelineSpec
    from phenospine.pipeline import Pipeline

    configure_logging(level=log_level, json_format=json_logs or None)

    try:
        spec = PipelineSpec.from_file(config)
        pipeline = Pipeline.from_spec(spec, base_dir=config.parent, out_dir=out)
        phenopackets = pipeline.run()
    except (PhenoSpineError, ValidationError) as exc:
        _fail(exc)
        return

    table = Table(title="Phenopackets")
    table.add_column("id")
    table.add_column("features", justify="right")
    table.add_column("interpretations", justify="right")
    table.add_column("resources", justify="right")
    for phenopacket in phenopackets:
        table.add_row(
            phenopacket.id,
            str(len(phenopacket.phenotypic_features)),
            str(len(phenopacket.interpretations)),
            str(len(phenopacket.meta_data.resources)),
        )
    console.print(table)
    loader = pipeline.loader
    if loader is not None:
        console.print(f"[green]Wrote {len(phenopackets)} phenopackets to {loader.out_path}[/green]")


@app.command("validate")
def validate(
    config: Path = typer.Argument(..., help="Pipeline config (.yaml, .yml or .json)"),
) -> None:
    """Parse the config and validate every table without collecting."""
    from phenospine.config.pipeline_config import PipelineSpec
    from phenospine.extract.data_source import FileDataSource

    configure_logging()

    try:
        spec = PipelineSpec.from_file(config)
        tables = [
            FileDataSource(
                source.path if source.path.is_absolute() else config.parent / source.path,
                source.to_table_context(),
                format=source.format,
                separator=source.separator,
            ).extract()
            for source in spec.data_sources
        ]
    except (PhenoSpineError, ValidationError) as exc:
        _fail(exc)
        return

    for table in tables:
        console.print(
            f"[green]OK[/green] {table.name}: {len(table)} rows, "
            f"{len(table.series_contexts)} series contexts"
        )


__all__ = ["app"]
