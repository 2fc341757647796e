"""edgeguard check — One read-only drift check.

Collects hardware facts once and compares the hardware ID with the
stored baseline. Never writes a baseline and never deprovisions.

Exit codes: 0 unchanged, 1 drift, 2 no baseline or check failed.
"""

from __future__ import annotations

import click
from rich.console import Console

from cli.run_cmd import _build_collector, _build_store, _setup_logging
from core.collector import CollectionError
from core.config import load_config
from core.fingerprint import FingerprintEngine, FingerprintError, short_id
from core.identity_store import PersistenceError

console = Console()

EXIT_DRIFT = 1
EXIT_ERROR = 2


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(),
    default=None,
    help="Path to config.yaml",
)
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging")
def check_cmd(config_path: str | None, debug: bool) -> None:
    """Compare current hardware against the baseline without acting on it."""
    cfg = load_config(config_path)
    _setup_logging(cfg, debug)
    store = _build_store(cfg)

    try:
        baseline = store.load_baseline()
    except PersistenceError as e:
        console.print(f"[red]Cannot read baseline: {e}[/red]")
        raise SystemExit(EXIT_ERROR) from e

    if baseline is None:
        console.print("[yellow]No baseline hardware ID recorded yet.[/yellow]")
        raise SystemExit(EXIT_ERROR)

    try:
        with _build_collector(cfg) as collector:
            snapshot = collector.collect()
        hardware_id = FingerprintEngine(store).fingerprint(snapshot)
    except (CollectionError, FingerprintError) as e:
        console.print(f"[red]Check failed: {e}[/red]")
        raise SystemExit(EXIT_ERROR) from e

    if hardware_id == baseline:
        console.print(f"[green]Hardware unchanged[/green] ({short_id(hardware_id)})")
        return

    console.print(
        f"[bold red]Hardware drift detected[/bold red] "
        f"(baseline {short_id(baseline)}, current {short_id(hardware_id)})"
    )
    raise SystemExit(EXIT_DRIFT)
