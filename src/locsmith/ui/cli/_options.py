"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


INPUTS_PANEL = "Input Handling"
GENERATION_PANEL = "Generation"
DIAGNOSTICS_PANEL = "Diagnostics"

ConfigArgument = Annotated[
    Path,
    typer.Argument(
        metavar="CONFIG",
        help="Project configuration file (YAML).",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

FontsOption = Annotated[
    bool | None,
    typer.Option(
        "--fonts/--no-fonts",
        help="Generate glyph atlases after the identifier module (defaults to the config).",
        rich_help_panel=GENERATION_PANEL,
    ),
]

OfflineOption = Annotated[
    bool,
    typer.Option(
        "--offline",
        help="Reuse the cached spreadsheet payloads instead of fetching them.",
        rich_help_panel=INPUTS_PANEL,
    ),
]

DumpOption = Annotated[
    Path | None,
    typer.Option(
        "--dump",
        metavar="PATH",
        help="Write the fetched spreadsheets as YAML into this directory.",
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
        rich_help_panel=GENERATION_PANEL,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug/--no-debug",
        help="Show full tracebacks when an unexpected error occurs.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

HashOption = Annotated[
    bool,
    typer.Option(
        "--hash",
        help="Treat IDENTIFIER as a numeric hash instead of an identifier name.",
    ),
]


__all__ = [
    "ConfigArgument",
    "DebugOption",
    "DumpOption",
    "FontsOption",
    "HashOption",
    "OfflineOption",
    "VerboseOption",
]
