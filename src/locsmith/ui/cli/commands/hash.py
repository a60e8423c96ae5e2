"""Implementation of the `locsmith hash` command."""

from __future__ import annotations

from typing import Annotated

import typer

from locsmith.core.hashing import hash_identity, sanitize_loc_id

from ..state import emit_warning


def hash_command(
    identifiers: Annotated[
        list[str], typer.Argument(metavar="IDENTIFIER...", help="Identifiers to hash.")
    ],
) -> None:
    """Print the sanitised form and hash of each IDENTIFIER."""
    for raw in identifiers:
        identity = sanitize_loc_id(raw)
        if not identity:
            emit_warning(f"'{raw}' does not contain a usable identifier.")
            continue
        typer.echo(f"{identity}\t{hash_identity(identity)}")


__all__ = ["hash_command"]
