"""refbuild job -- register and list jobs."""

from __future__ import annotations

import click

from rich.markup import escape

from refbuild.cli.formatting import format_jobs


@click.group()
def job() -> None:
    """Register and list jobs."""


@job.command("add")
@click.argument("name")
@click.option("--project", default=None, help="Multi-branch project the job belongs to.")
@click.option("--branch", default=None, help="Branch built by the job.")
@click.option("--primary", is_flag=True, help="Make this the primary branch of its project.")
@click.pass_context
def add(ctx: click.Context, name: str, project: str | None, branch: str | None, primary: bool) -> None:
    """Register job NAME."""
    from refbuild.cli import _ledger_session

    if (branch or primary) and project is None:
        raise click.UsageError("--branch and --primary require --project.")

    with _ledger_session(ctx) as (ledger, console):
        info = ledger.create_job(name, project=project, branch=branch, primary=primary)
        console.print(f"Created job [bold]{escape(str(info))}[/bold]")


@job.command("list")
@click.pass_context
def list_jobs(ctx: click.Context) -> None:
    """List registered jobs."""
    from refbuild.cli import _ledger_session

    with _ledger_session(ctx) as (ledger, console):
        format_jobs(ledger.list_jobs(), console)
