"""edgeguard status — Show persisted identity and configured endpoints."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from cli.run_cmd import _build_store
from core.config import load_config
from core.fingerprint import short_id
from core.identity_store import PersistenceError

console = Console()


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(),
    default=None,
    help="Path to config.yaml",
)
def status_cmd(config_path: str | None) -> None:
    """Show whether a salt and baseline exist and where the watchdog points."""
    cfg = load_config(config_path)
    store = _build_store(cfg)

    table = Table(title="EdgeGuard Status")
    table.add_column("Item", style="cyan")
    table.add_column("Value")

    try:
        salt = store.load_salt()
        if salt is None:
            salt_state = "[dim]absent[/dim]"
        elif not salt:
            salt_state = "[red]empty[/red]"
        else:
            salt_state = "[green]present[/green]"
    except PersistenceError as e:
        salt_state = f"[red]unreadable: {e}[/red]"
    table.add_row("Salt", f"{salt_state}  [dim]{store.salt_path}[/dim]")

    try:
        baseline = store.load_baseline()
        baseline_state = (
            f"[green]{short_id(baseline)}[/green]" if baseline else "[dim]absent[/dim]"
        )
    except PersistenceError as e:
        baseline_state = f"[red]unreadable: {e}[/red]"
    table.add_row("Baseline", f"{baseline_state}  [dim]{store.baseline_path}[/dim]")

    table.add_row("HAL", f"http://{cfg.hal.host}:{cfg.hal.port}/hal/hwc")
    table.add_row("Deprovision", cfg.deprovision.url)
    table.add_row("Token file", str(cfg.resolve(cfg.deprovision.token_path)))
    table.add_row("Period", f"{cfg.monitor.period_seconds}s")

    console.print(table)
