"""Implementation of the `locsmith generate` command."""

from __future__ import annotations

from rich.table import Table
import typer

from locsmith.core.config import load_config
from locsmith.core.exceptions import ConfigError, PipelineError
from locsmith.pipeline import (
    LocalisationImport,
    PipelineLogger,
    StepResult,
    offline_fetch_factory,
)

from .._options import (
    ConfigArgument,
    DebugOption,
    DumpOption,
    FontsOption,
    OfflineOption,
    VerboseOption,
)
from ..state import emit_error, set_cli_state


def _summary_table(importer: LocalisationImport) -> Table:
    table = Table(title="Localisation import", show_lines=False)
    table.add_column("Step")
    table.add_column("Status")
    for step in importer.pipeline.steps:
        status = step.status.value if step.status is not None else "skipped"
        style = {"success": "green", "failed": "red"}.get(status, "dim")
        table.add_row(step.name, f"[{style}]{status}[/{style}]")
    return table


def generate(
    config_path: ConfigArgument,
    fonts: FontsOption = None,
    offline: OfflineOption = False,
    dump: DumpOption = None,
    verbose: VerboseOption = 0,
    debug: DebugOption = False,
) -> None:
    """Fetch the spreadsheets and regenerate tables, identifiers and atlases."""
    state = set_cli_state(verbosity=verbose, debug=debug)
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    logger = PipelineLogger(verbose=state.verbosity > 0)
    importer = LocalisationImport(
        config,
        fetch_factory=offline_fetch_factory if offline else None,
        logger=logger,
        generate_fonts=fonts,
        dump_dir=dump,
        raise_on_failure=True,
    )
    try:
        with logger.progress("Generating localisation data") as update:
            importer.run(progress=update)
    except PipelineError as exc:
        state.console.print(_summary_table(importer))
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    state.console.print(_summary_table(importer))
    warnings = state.tally["warning"]
    if warnings:
        state.console.print(f"[yellow]{warnings} warning(s) reported.[/yellow]")
    if importer.status is not StepResult.SUCCESS:
        raise typer.Exit(code=1)


__all__ = ["generate"]
