"""Command: show the dependency layers without changing anything."""

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
  modrollout plan
  modrollout plan --include 'Az.*' --exclude 'Az.Sql*'
  modrollout --json plan --overrides '{"Az.Accounts": "2.12.1"}'""",
)
@rollout_options
@click.pass_obj
def plan(
    app: AppContext,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    foundation: str | None,
    overrides: dict[str, str] | None,
) -> None:
    """Resolve gallery versions and print the update layers."""
    from modrollout.services.update import UpdateService

    app.apply_rollout_options(**rollout_updates(include, exclude, foundation, overrides))
    with app.open_run() as run:
        result = UpdateService(run).plan()
    app.emit(result)
