"""refbuild delete -- delete a build."""

from __future__ import annotations

import click
from rich.markup import escape


@click.command()
@click.argument("build_id")
@click.pass_context
def delete(ctx: click.Context, build_id: str) -> None:
    """Delete BUILD_ID with its commit window and reference pointer.

    Builds that use BUILD_ID as reference keep pointing at it.
    """
    from refbuild.cli import _ledger_session

    with _ledger_session(ctx) as (ledger, console):
        ledger.delete_build(build_id)
        console.print(f"Deleted build [yellow]{escape(build_id)}[/yellow]")
