"""refbuild record -- record a finished build and resolve its reference build."""

from __future__ import annotations

import click

from refbuild.cli.formatting import format_build
from refbuild.models.build import BuildResult


@click.command()
@click.argument("job_name")
@click.option(
    "--repo",
    default=".",
    envvar="REFBUILD_REPO",
    type=click.Path(file_okay=False),
    help="Git working copy the build ran on.",
)
@click.option(
    "--result",
    default=BuildResult.SUCCESS.value,
    type=click.Choice([r.value for r in BuildResult], case_sensitive=False),
    help="Result of the build.",
)
@click.option("--reference-job", default="", help="Job to search for the reference build.")
@click.option("--max-commits", default=None, type=click.IntRange(min=1), help="Commit budget of the search.")
@click.option("--skip-unknown-commits", is_flag=True, help="Ignore builds with commits unknown to this build.")
@click.option("--latest-build-if-not-found", is_flag=True, help="Fall back to the newest build of the reference job.")
@click.option("--first-parent", is_flag=True, help="Follow only the first parent of merge commits.")
@click.pass_context
def record(
    ctx: click.Context,
    job_name: str,
    repo: str,
    result: str,
    reference_job: str,
    max_commits: int | None,
    skip_unknown_commits: bool,
    latest_build_if_not_found: bool,
    first_parent: bool,
) -> None:
    """Record a build of JOB_NAME from the HEAD of a git working copy.

    Starts a build, records its commit window, marks it finished and
    resolves its reference build.
    """
    from refbuild.cli import _ledger_session
    from refbuild.models.config import ReferenceConfig
    from refbuild.vcs.git import GitRepository

    options = {
        "reference_job": reference_job,
        "skip_unknown_commits": skip_unknown_commits,
        "latest_build_if_not_found": latest_build_if_not_found,
    }
    if max_commits is not None:
        options["max_commits"] = max_commits

    with _ledger_session(ctx) as (ledger, console):
        config = ReferenceConfig(**options)
        with GitRepository(repo, first_parent=first_parent) as vcs:
            outcome = ledger.complete_build(
                job_name, vcs, result=BuildResult(result.lower()), config=config
            )
        format_build(outcome.build, outcome.window, outcome.reference, console, verbose=True)
