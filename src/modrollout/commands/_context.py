"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Opens the run context for a command and centralizes
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import click
from pydantic import ValidationError

from modrollout.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from collections.abc import Iterator

    from modrollout.config.settings import RolloutSettings
    from modrollout.services.context import RunContext
    from modrollout.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``.  No network client is
    created until a command opens a run, so ``--help`` and ``--version``
    stay offline.
    """

    def __init__(self, settings: RolloutSettings) -> None:
        self.settings = settings

        # Configure structured logging
        from modrollout.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        # Enable telemetry context var when verbose
        if settings.verbose:
            from modrollout.services.telemetry import enable_telemetry

            enable_telemetry()

    def apply_rollout_options(self, **options: Any) -> None:
        """Fold command-line rollout options over the configured [rollout] section."""
        try:
            self.settings = self.settings.with_rollout(**options)
        except ValidationError as exc:
            raise click.UsageError(f"Invalid rollout option: {exc}") from exc

    @contextmanager
    def open_run(self) -> Iterator[RunContext]:
        """Open a run with the gallery and account clients from settings."""
        from modrollout.services.context import open_run

        with open_run(self.settings) as run:
            yield run

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
