"""Rollout options shared by ``plan`` and ``update``."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import click


def _parse_overrides(
    _ctx: click.Context, _param: click.Parameter, value: str | None
) -> dict[str, str] | None:
    if value is None:
        return None
    try:
        data = json.loads(value)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
        raise click.BadParameter("expected a JSON object mapping module name to version")
    return data


def rollout_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach --include/--exclude/--foundation/--overrides to a command."""
    options = [
        click.option(
            "--include",
            multiple=True,
            help="Module name glob to manage (repeatable). Default: Az.*",
        ),
        click.option(
            "--exclude",
            multiple=True,
            help="Module name glob to leave alone (repeatable).",
        ),
        click.option("--foundation", default=None, help="Module that always goes first."),
        click.option(
            "--overrides",
            default=None,
            callback=_parse_overrides,
            help='JSON object of forced versions, e.g. \'{"Az.Accounts": "2.12.1"}\'.',
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def rollout_updates(
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    foundation: str | None,
    overrides: dict[str, str] | None,
    **extra: Any,
) -> dict[str, Any]:
    """Map parsed option values onto [rollout] fields; unset options map to None."""
    return {
        "include": list(include) or None,
        "exclude": list(exclude) or None,
        "foundation": foundation,
        "version_overrides": overrides,
        **extra,
    }
