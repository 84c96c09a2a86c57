"""refbuild CLI -- terminal interface for commit windows and reference builds.

This module is NEVER imported from refbuild/__init__.py.
It is only loaded via the ``refbuild`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install refbuild[cli]"
    ) from None

from refbuild.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from refbuild.ledger import Ledger


@click.group()
@click.option(
    "--db",
    default=".refbuild.db",
    envvar="REFBUILD_DB",
    help="Path to the refbuild database.",
)
@click.option("-v", "--verbose", count=True, help="Log engine decisions (-vv for debug).")
@click.pass_context
def cli(ctx: click.Context, db: str, verbose: int) -> None:
    """refbuild: find the reference build of every CI build."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
        )


def _get_ledger(ctx: click.Context) -> Ledger:
    """Open a Ledger on the database given via --db."""
    from refbuild.ledger import Ledger

    return Ledger.open(ctx.obj["db_path"])


@contextmanager
def _ledger_session(ctx: click.Context) -> Iterator[tuple[Ledger, Console]]:
    """Context manager that opens a Ledger, yields (ledger, console), and handles cleanup.

    Ensures the ledger is closed on exit and formats exceptions as CLI errors.
    """
    console = get_console()
    try:
        ledger = _get_ledger(ctx)
        try:
            yield ledger, console
        finally:
            ledger.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from refbuild.cli.commands.job import job  # noqa: E402
from refbuild.cli.commands.record import record  # noqa: E402
from refbuild.cli.commands.builds import builds  # noqa: E402
from refbuild.cli.commands.show import show  # noqa: E402
from refbuild.cli.commands.delete import delete  # noqa: E402

cli.add_command(job)
cli.add_command(record)
cli.add_command(builds)
cli.add_command(show)
cli.add_command(delete)
