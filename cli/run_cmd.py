"""edgeguard run — Start the hardware drift watchdog.

Polls the HAL service every period until hardware drift is detected
and the device has been deprovisioned, then exits with status 0.
"""

from __future__ import annotations

import logging
import signal
from typing import Any

import click

from core.collector import HardwareCollector
from core.config import Config, load_config
from core.deprovision import DeprovisionClient
from core.fingerprint import FingerprintEngine
from core.identity_store import IdentityStore
from core.log_setup import setup_logging
from core.monitor import DriftMonitor, MonitorState

logger = logging.getLogger(__name__)


def _build_store(cfg: Config) -> IdentityStore:
    return IdentityStore(
        cfg.resolve(cfg.identity.salt_path),
        cfg.resolve(cfg.identity.baseline_path),
    )


def _build_collector(cfg: Config) -> HardwareCollector:
    return HardwareCollector(
        cfg.hal.host,
        port=cfg.hal.port,
        timeout=cfg.hal.timeout_seconds,
    )


def _setup_logging(cfg: Config, debug: bool) -> None:
    log_dir = cfg.resolve(cfg.logging.log_dir) if cfg.logging.log_dir else None
    setup_logging(debug=debug, log_dir=log_dir, max_files=cfg.logging.max_log_files)


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(),
    default=None,
    help="Path to config.yaml",
)
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging")
def run_cmd(config_path: str | None, debug: bool) -> None:
    """Watch for hardware changes and deprovision the device on drift."""
    cfg = load_config(config_path)
    _setup_logging(cfg, debug)

    store = _build_store(cfg)
    with (
        _build_collector(cfg) as collector,
        DeprovisionClient(
            cfg.deprovision.url, timeout=cfg.deprovision.timeout_seconds
        ) as deprovisioner,
    ):
        monitor = DriftMonitor(
            collector,
            FingerprintEngine(store),
            store,
            deprovisioner,
            token_path=cfg.resolve(cfg.deprovision.token_path),
            period=cfg.monitor.period_seconds,
            backoff_multiplier=cfg.monitor.backoff_multiplier,
            max_backoff=cfg.monitor.max_backoff_seconds,
            max_consecutive_failures=cfg.monitor.max_consecutive_failures,
        )

        def _terminate(sig: int, frame: Any) -> None:
            monitor.stop()
            raise KeyboardInterrupt

        previous_handler = signal.signal(signal.SIGTERM, _terminate)
        try:
            final_state = monitor.run()
        except KeyboardInterrupt:
            monitor.stop()
            final_state = monitor.state
            logger.info("Hardware watchdog interrupted (state=%s)", final_state.value)
        finally:
            signal.signal(signal.SIGTERM, previous_handler)

    if final_state is MonitorState.DEPROVISIONED:
        logger.info("Watchdog finished: device deprovisioned.")
