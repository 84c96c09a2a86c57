"""refbuild show -- show the commit window and reference of a build."""

from __future__ import annotations

import click

from refbuild.cli.formatting import format_build


@click.command()
@click.argument("build_id")
@click.option("-v", "--verbose", is_flag=True, help="Show how the reference build was chosen.")
@click.pass_context
def show(ctx: click.Context, build_id: str, verbose: bool) -> None:
    """Show BUILD_ID (e.g. ``app#3``) with its commits and reference build."""
    from refbuild.cli import _ledger_session
    from refbuild.exceptions import BuildNotFoundError

    with _ledger_session(ctx) as (ledger, console):
        build = ledger.get_build(build_id)
        if build is None:
            raise BuildNotFoundError(build_id)
        format_build(
            build,
            ledger.get_window(build_id),
            ledger.get_reference(build_id),
            console,
            verbose=verbose,
        )
