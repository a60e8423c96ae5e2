"""Implementation of the `locsmith resolve` command."""

from __future__ import annotations

from typing import Annotated

import typer

from locsmith.core.config import LocsmithConfig, load_config
from locsmith.core.exceptions import ConfigError
from locsmith.core.resolution import FileTableSource, TableCache, resolve, resolve_identity

from .._options import ConfigArgument, HashOption
from ..diagnostics import CliEmitter
from ..state import emit_error, emit_warning, get_cli_state


def build_cache(config: LocsmithConfig, emitter: CliEmitter | None = None) -> TableCache:
    """Table cache over the canonical files and identifier module of ``config``."""
    return TableCache(
        [FileTableSource(name, document.canonical_path) for name, document in config.tables()],
        languages=config.language_names,
        generated=config.ids_module,
        master=config.master_table,
        emitter=emitter,
    )


def resolve_command(
    config_path: ConfigArgument,
    identifier: Annotated[str, typer.Argument(help="Identifier name, or hash with --hash.")],
    language: Annotated[str, typer.Argument(help="Language to resolve the text in.")],
    use_hash: HashOption = False,
) -> None:
    """Print the text of IDENTIFIER in LANGUAGE and its lookup status."""
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    cache = build_cache(config, CliEmitter())
    if use_hash:
        try:
            hash_id = int(identifier)
        except ValueError as exc:
            raise typer.BadParameter(
                f"'{identifier}' is not an integer hash.", param_hint="IDENTIFIER"
            ) from exc
        resolution = resolve(hash_id, language, cache=cache)
    else:
        resolution = resolve_identity(identifier, language, cache=cache)

    typer.echo(resolution.text)
    if not resolution.ok:
        emit_warning(f"status: {resolution.status.name}")
        raise typer.Exit(code=1)
    if get_cli_state().verbosity > 0:
        typer.echo(f"status: {resolution.status.name} table: {resolution.table} row: {resolution.row}")


__all__ = ["build_cache", "resolve_command"]
