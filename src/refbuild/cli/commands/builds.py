"""refbuild builds -- list the builds of a job."""

from __future__ import annotations

import click

from refbuild.cli.formatting import format_builds


@click.command()
@click.argument("job_name")
@click.option("-n", "--limit", default=20, type=int, help="Maximum number of builds to show.")
@click.pass_context
def builds(ctx: click.Context, job_name: str, limit: int) -> None:
    """List builds of JOB_NAME, newest first, with their reference build."""
    from refbuild.cli import _ledger_session

    with _ledger_session(ctx) as (ledger, console):
        entries = [
            (build, ledger.get_reference(build.build_id))
            for build in ledger.list_builds(job_name)[:limit]
        ]
        format_builds(entries, console)
