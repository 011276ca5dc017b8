#!/usr/bin/env python3
"""
vestvault CLI - inspect release schedules offline

Reads a schedule record as produced by ReleaseSchedule.to_dict() (a JSON
object) and evaluates its release curve:
- Vested and releasable amounts at a given timestamp
- A timeline table from start to the end of the schedule

An optional top-level "total_balance" key overrides the balance the curve is
evaluated against; it defaults to total_amount.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vestvault import __version__
from vestvault.core import config
from vestvault.core.contracts.release_schedule import (
    ReleaseSchedule,
    releasable_amount,
    vested_amount,
)
from vestvault.core.logging_config import setup_logging

logger = logging.getLogger(__name__)
console = Console()


def _handle_cli_error(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def _load_schedule(path: str) -> tuple[ReleaseSchedule, int]:
    try:
        data: dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise click.ClickException(f"Cannot read schedule file {path}: {exc}") from exc

    total_balance = data.pop("total_balance", None)
    try:
        schedule = ReleaseSchedule.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise click.ClickException(f"Invalid schedule record: {exc}") from exc
    return schedule, int(total_balance if total_balance is not None else schedule.total_amount)


def _point(schedule: ReleaseSchedule, total_balance: int, timestamp: int) -> dict[str, int]:
    return {
        "time": timestamp,
        "vested": vested_amount(schedule, total_balance, timestamp),
        "releasable": releasable_amount(schedule, total_balance, timestamp),
    }


@click.group()
@click.version_option(__version__, prog_name="vestvault")
@click.option("--json-output", "json_output", is_flag=True, help="Print raw JSON instead of tables")
@click.option(
    "--log-level",
    type=click.Choice(config.LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, json_output: bool, log_level: str):
    """Inspect vestvault release schedules."""
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json_output
    setup_logging(name="vestvault", level=log_level, enable_console=False)


@cli.command("curve")
@click.argument("schedule_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--at", "timestamp", type=int, required=True, help="Unix timestamp to evaluate")
@click.pass_context
def curve(ctx: click.Context, schedule_file: str, timestamp: int):
    """
    Show vested and releasable amounts at one timestamp.

    Example:
        vestvault curve schedule.json --at 1700000500
    """
    try:
        schedule, total_balance = _load_schedule(schedule_file)
        point = _point(schedule, total_balance, timestamp)

        if ctx.obj.get("json_output"):
            click.echo(json.dumps(point, indent=2))
            return

        table = Table(show_header=False, box=box.ROUNDED)
        table.add_row("[bold cyan]Beneficiary", schedule.beneficiary)
        table.add_row("[bold cyan]Mode", schedule.release_mode.value)
        table.add_row("[bold cyan]Time", str(timestamp))
        table.add_row("[bold green]Vested", str(point["vested"]))
        table.add_row("[bold green]Releasable", str(point["releasable"]))
        table.add_row("[bold yellow]Released", str(schedule.released))
        if schedule.revoked:
            table.add_row("[bold red]Revoked at", str(schedule.revoke_time))
        console.print(Panel(table, title="[bold green]Release Curve", border_style="green"))
    except click.ClickException:
        raise
    except Exception as exc:
        _handle_cli_error(exc)


@cli.command("timeline")
@click.argument("schedule_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--steps", type=click.IntRange(min=1), default=10, show_default=True,
              help="Number of intervals between start and end")
@click.pass_context
def timeline(ctx: click.Context, schedule_file: str, steps: int):
    """
    Tabulate the release curve from start time to the end of the schedule.

    The cliff time is always included as a row.
    """
    try:
        schedule, total_balance = _load_schedule(schedule_file)
        span = schedule.end_time - schedule.start_time
        times = {schedule.start_time + span * i // steps for i in range(steps + 1)}
        times.add(schedule.cliff_time)
        points = [_point(schedule, total_balance, t) for t in sorted(times)]

        if ctx.obj.get("json_output"):
            click.echo(json.dumps(points, indent=2))
            return

        table = Table(title="Release Timeline", box=box.SIMPLE_HEAVY)
        table.add_column("Time", justify="right")
        table.add_column("Vested", justify="right", style="green")
        table.add_column("Releasable", justify="right", style="cyan")
        for p in points:
            marker = " (cliff)" if p["time"] == schedule.cliff_time else ""
            table.add_row(f"{p['time']}{marker}", str(p["vested"]), str(p["releasable"]))
        console.print(table)
    except click.ClickException:
        raise
    except Exception as exc:
        _handle_cli_error(exc)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
