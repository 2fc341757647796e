"""CLI entry point for EdgeGuard.

Registered as `edgeguard` console script in pyproject.toml.
"""

from __future__ import annotations

import click

from cli.check_cmd import check_cmd
from cli.run_cmd import run_cmd
from cli.status_cmd import status_cmd


@click.group()
@click.version_option(version="0.1.0", prog_name="EdgeGuard")
def cli() -> None:
    """EdgeGuard — hardware drift watchdog for edge nodes."""


cli.add_command(run_cmd, "run")
cli.add_command(check_cmd, "check")
cli.add_command(status_cmd, "status")


if __name__ == "__main__":
    cli()
