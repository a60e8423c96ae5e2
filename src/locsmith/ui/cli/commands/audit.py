"""Implementation of the `locsmith audit` command."""

from __future__ import annotations

import typer

from locsmith.core.config import load_config
from locsmith.core.exceptions import ConfigError
from locsmith.pipeline import audit_generated_atlases

from .._options import ConfigArgument
from ..state import emit_error, emit_warning, get_cli_state


def audit(config_path: ConfigArgument) -> None:
    """Check generated atlases against the characters each language needs."""
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    problems = audit_generated_atlases(config)
    for problem in problems:
        emit_warning(problem)
    if problems:
        emit_error(f"{len(problems)} atlas coverage problem(s) found.")
        raise typer.Exit(code=1)
    get_cli_state().console.print("[green]Every required character is present.[/green]")


__all__ = ["audit"]
