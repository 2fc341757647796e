"""Configuration system for EdgeGuard.

Loads an optional config.yaml into typed dataclasses. The deployment
environment variables ``HAL_URL`` and ``PERIOD`` override the file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_HAL_HOST = "iofog"
DEFAULT_HAL_PORT = 54331
DEFAULT_DEPROVISION_URL = "http://iofog:54321/v2/deprovision"
DEFAULT_PERIOD = 60


@dataclass
class HalConfig:
    """Hardware-abstraction layer (facts service) endpoint."""

    host: str = DEFAULT_HAL_HOST
    port: int = DEFAULT_HAL_PORT
    timeout_seconds: float = 10.0


@dataclass
class DeprovisionConfig:
    """Control-plane revocation endpoint and credential location."""

    url: str = DEFAULT_DEPROVISION_URL
    timeout_seconds: float = 10.0
    token_path: str = "local-api"


@dataclass
class IdentityConfig:
    """Where the salt and baseline hardware ID are persisted."""

    salt_path: str = "id/salt-key"
    baseline_path: str = "id/hw-id"


@dataclass
class MonitorConfig:
    """Polling loop behaviour."""

    period_seconds: int = DEFAULT_PERIOD
    backoff_multiplier: float = 1.0
    max_backoff_seconds: int = 900
    max_consecutive_failures: int = 10


@dataclass
class LoggingConfig:
    """Log file settings. Empty ``log_dir`` means console only."""

    log_dir: str = ""
    max_log_files: int = 10


@dataclass
class Config:
    """Top-level EdgeGuard configuration."""

    hal: HalConfig = field(default_factory=HalConfig)
    deprovision: DeprovisionConfig = field(default_factory=DeprovisionConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    project_root: Path = field(default_factory=Path.cwd)

    def resolve(self, path: str) -> Path:
        """Resolve a configured path against ``project_root``."""
        p = Path(path)
        return p if p.is_absolute() else self.project_root / p


def _positive_int(value: Any, default: int, name: str) -> int:
    """Parse a strictly positive integer, falling back to *default*."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s value %r, using default: %d", name, value, default)
        return default
    if parsed <= 0:
        logger.warning("Invalid %s value %r, using default: %d", name, value, default)
        return default
    return parsed


def _positive_float(value: Any, default: float, name: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s value %r, using default: %s", name, value, default)
        return default
    if parsed <= 0:
        logger.warning("Invalid %s value %r, using default: %s", name, value, default)
        return default
    return parsed


def _apply_env_overrides(config: Config) -> None:
    """Apply HAL_URL / PERIOD from the environment."""
    hal_url = os.environ.get("HAL_URL")
    if hal_url is not None:
        config.hal.host = hal_url

    period = os.environ.get("PERIOD")
    if period is not None:
        config.monitor.period_seconds = _positive_int(period, DEFAULT_PERIOD, "PERIOD")


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from YAML plus environment overrides.

    Args:
        config_path: Path to config.yaml. If None, checks EDGEGUARD_CONFIG
                     env var, then falls back to ./config.yaml. A missing
                     file yields defaults rooted at the working directory;
                     relative paths in a loaded file resolve against the
                     file's directory.

    Returns:
        Populated Config dataclass.
    """
    if config_path is None:
        env_path = os.environ.get("EDGEGUARD_CONFIG")
        if env_path:
            config_path = Path(env_path)
        else:
            config_path = Path.cwd() / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        config = Config()
        _apply_env_overrides(config)
        return config

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    hal_raw = raw.get("hal") or {}
    hal = HalConfig(
        host=str(hal_raw.get("host", DEFAULT_HAL_HOST)),
        port=_positive_int(hal_raw.get("port", DEFAULT_HAL_PORT), DEFAULT_HAL_PORT, "hal.port"),
        timeout_seconds=_positive_float(
            hal_raw.get("timeout_seconds", 10.0), 10.0, "hal.timeout_seconds"
        ),
    )

    dep_raw = raw.get("deprovision") or {}
    deprovision = DeprovisionConfig(
        url=str(dep_raw.get("url", DEFAULT_DEPROVISION_URL)),
        timeout_seconds=_positive_float(
            dep_raw.get("timeout_seconds", 10.0), 10.0, "deprovision.timeout_seconds"
        ),
        token_path=str(dep_raw.get("token_path", "local-api")),
    )

    id_raw = raw.get("identity") or {}
    identity = IdentityConfig(
        salt_path=str(id_raw.get("salt_path", "id/salt-key")),
        baseline_path=str(id_raw.get("baseline_path", "id/hw-id")),
    )

    mon_raw = raw.get("monitor") or {}
    max_failures = mon_raw.get("max_consecutive_failures", 10)
    monitor = MonitorConfig(
        period_seconds=_positive_int(
            mon_raw.get("period_seconds", DEFAULT_PERIOD), DEFAULT_PERIOD, "monitor.period_seconds"
        ),
        backoff_multiplier=max(
            1.0,
            _positive_float(mon_raw.get("backoff_multiplier", 1.0), 1.0, "monitor.backoff_multiplier"),
        ),
        max_backoff_seconds=_positive_int(
            mon_raw.get("max_backoff_seconds", 900), 900, "monitor.max_backoff_seconds"
        ),
        # 0 disables the failure alarm
        max_consecutive_failures=0
        if max_failures == 0
        else _positive_int(max_failures, 10, "monitor.max_consecutive_failures"),
    )

    log_raw = raw.get("logging") or {}
    logging_config = LoggingConfig(
        log_dir=str(log_raw.get("log_dir", "") or ""),
        max_log_files=_positive_int(log_raw.get("max_log_files", 10), 10, "logging.max_log_files"),
    )

    config = Config(
        hal=hal,
        deprovision=deprovision,
        identity=identity,
        monitor=monitor,
        logging=logging_config,
        project_root=config_path.parent.resolve(),
    )
    _apply_env_overrides(config)
    return config
