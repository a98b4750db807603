"""Subcommand modules for modrollout.

Provides register_commands() which uses deferred imports to keep
``modrollout --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the standalone commands on the root CLI group."""
    from modrollout.commands.plan import plan
    from modrollout.commands.update import update

    cli.add_command(plan)
    cli.add_command(update)
