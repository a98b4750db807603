"""Command: update managed modules to their latest gallery versions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from modrollout.commands._base import RolloutCommand
from modrollout.commands._options import rollout_options, rollout_updates

if TYPE_CHECKING:
    from modrollout.commands._context import AppContext


@click.command(
    cls=RolloutCommand,
    examples="""\
  modrollout update
  modrollout update --concurrency 5
  modrollout update --dry-run
  modrollout --log-json update --exclude 'Az.Sql*'""",
)
@rollout_options
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum imports in flight at once. Default: 10",
)
@click.option("--dry-run", is_flag=True, help="Plan and report, submit nothing.")
@click.pass_obj
def update(
    app: AppContext,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    foundation: str | None,
    overrides: dict[str, str] | None,
    concurrency: int | None,
    dry_run: bool,
) -> None:
    """Import the latest gallery version of every out-of-date module, layer by layer."""
    from modrollout.services.update import UpdateService

    app.apply_rollout_options(
        **rollout_updates(include, exclude, foundation, overrides, concurrency_cap=concurrency)
    )
    with app.open_run() as run:
        result = UpdateService(run).apply(dry_run=dry_run)
    app.emit(result)
